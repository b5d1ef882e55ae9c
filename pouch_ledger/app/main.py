import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from .api.exceptions import register_exception_handlers
from .api.routes import (
    admin_router,
    goal_router,
    pouch_router,
    router as accounts_router,
    transaction_router,
    transfer_router,
)
from .core.config import get_settings
from .core.db import get_executor, init_db
from .core.executor import ShardExecutor
from .migrations import MigrationEngine
from .seeds import SeedLoader

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    executor = init_db()
    if settings.migrate_on_startup:
        MigrationEngine(executor).apply_migrations().raise_for_errors()
    if settings.seed_on_startup:
        SeedLoader(executor).run_seeds()
    logger.info("app.started", extra={"shards": [s.value for s in executor.shards]})
    yield

app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.include_router(accounts_router)
app.include_router(pouch_router)
app.include_router(transaction_router)
app.include_router(transfer_router)
app.include_router(goal_router)
app.include_router(admin_router)
register_exception_handlers(app)

@app.get("/health")
def read_health(executor: ShardExecutor = Depends(get_executor)) -> dict:
    shards = executor.health_check()
    healthy = all(state == "healthy" for state in shards.values())
    return {"status": "ok" if healthy else "degraded", "shards": shards}
