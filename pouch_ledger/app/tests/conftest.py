import pytest

from ..core.config import Settings
from ..core.db import build_executor
from ..core.locks import RowLocks
from ..migrations import MigrationEngine
from ..seeds import SeedLoader
from ..services import LedgerService


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        shard_url_template=f"sqlite:///{tmp_path}/shards/{{shard}}.db",
        migrate_on_startup=True,
        seed_on_startup=False,
        _env_file=None,
    )

@pytest.fixture
def bare_executor(settings):
    executor = build_executor(settings)
    yield executor
    executor.dispose()

@pytest.fixture
def executor(bare_executor):
    MigrationEngine(bare_executor).apply_migrations().raise_for_errors()
    return bare_executor

@pytest.fixture
def seeded_executor(executor):
    SeedLoader(executor).run_seeds()
    return executor

@pytest.fixture
def ledger(executor) -> LedgerService:
    return LedgerService(executor, RowLocks())
