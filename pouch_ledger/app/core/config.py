from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Pouch Ledger API"
    shard_url_template: str = "sqlite:///shards/{shard}.db"
    shard_urls: dict[str, str] = {}
    log_level: str = "INFO"
    migrate_on_startup: bool = True
    seed_on_startup: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="POUCH_LEDGER_",
        extra="ignore",
    )

    def shard_url(self, shard_name: str) -> str:
        """Database URL for one shard; explicit overrides win over the template."""
        if shard_name in self.shard_urls:
            return self.shard_urls[shard_name]
        return self.shard_url_template.format(shard=shard_name)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
