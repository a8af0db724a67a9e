"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database: str = "samples.duckdb"
    log_level: str = "info"

    # Upper bound on a single request's store access
    query_timeout_seconds: float = 30.0

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(env_prefix="ASVGRAPH_", env_file=".env", env_file_encoding="utf-8")


settings = Settings()
