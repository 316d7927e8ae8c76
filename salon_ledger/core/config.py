"""
Core configuration - environment driven settings.
"""

import os
from dataclasses import dataclass, field


def get_engine_url(database_type: str | None = None) -> str:
    """Build the database URL from environment variables."""
    db_type = database_type or os.getenv("DATABASE_TYPE", "sqlite")

    if db_type == "sqlite":
        db_path = os.getenv("DATABASE_PATH", "./data/salon_ledger.db")
        return f"sqlite:///{db_path}"
    elif db_type == "postgresql":
        host = os.getenv("DB_HOST", "localhost")
        port = os.getenv("DB_PORT", "5432")
        dbname = os.getenv("DB_NAME", "salon_ledger")
        user = os.getenv("DB_USER", "postgres")
        password = os.getenv("DB_PASSWORD", "postgres")
        return f"postgresql://{user}:{password}@{host}:{port}/{dbname}"
    else:
        raise ValueError(f"Unsupported database type: {db_type}")


def _split_csv(value: str) -> frozenset[str]:
    return frozenset(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_format: str = "json"
    currency: str = "RWF"
    external_payment_methods: frozenset[str] = field(
        default_factory=lambda: frozenset({"mobile_money"})
    )


def load_settings() -> Settings:
    return Settings(
        database_url=get_engine_url(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "json"),
        currency=os.getenv("LEDGER_CURRENCY", "RWF"),
        external_payment_methods=_split_csv(
            os.getenv("EXTERNAL_PAYMENT_METHODS", "mobile_money")
        ),
    )


settings = load_settings()
