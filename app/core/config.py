from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Survivor League Ledger"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql://localhost:5432/survivor_league"

    # JWT (tokens are issued by the auth service, we only verify them)
    secret_key: str = "change-me"
    algorithm: str = "HS256"

    # Recalculation worker pool, keep at or below the DB pool size
    recalc_max_workers: int = 4

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache()
def get_settings() -> Settings:
    return Settings()
