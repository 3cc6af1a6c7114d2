"""Application configuration contract."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from depfixer.errors import ConfigError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    workspace_root: str = Field(alias="DEPFIXER_WORKSPACE_ROOT", default=".")
    external_root: str = Field(alias="DEPFIXER_EXTERNAL_ROOT", default="")
    persistence_root: str = Field(
        alias="DEPFIXER_PERSISTENCE_ROOT", default="~/.cache/depfixer"
    )
    workspace_name: str = Field(alias="DEPFIXER_WORKSPACE_NAME", default="")

    index_version: str = Field(alias="DEPFIXER_INDEX_VERSION", default="1.0.2")
    gc_threshold_seconds: float = Field(alias="DEPFIXER_GC_THRESHOLD_SECONDS", default=3.0)
    index_workers: int = Field(alias="DEPFIXER_INDEX_WORKERS", default=1)
    commit_message: str = Field(alias="DEPFIXER_COMMIT_MESSAGE", default="commit by depfixer")


def validate_settings(settings: Settings) -> None:
    problems: list[str] = []
    if settings.gc_threshold_seconds <= 0:
        problems.append("DEPFIXER_GC_THRESHOLD_SECONDS(must be > 0)")
    if settings.index_workers < 1:
        problems.append("DEPFIXER_INDEX_WORKERS(must be >= 1)")
    if not settings.index_version.strip():
        problems.append("DEPFIXER_INDEX_VERSION")
    if not settings.commit_message.strip():
        problems.append("DEPFIXER_COMMIT_MESSAGE")

    if problems:
        keys = ", ".join(sorted(set(problems)))
        raise ConfigError(f"invalid configuration: {keys}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
