"""Where sale records live: the database URL and SQL echo flag.

Nothing is read from the environment here; callers pick the URL and hand
the config to ``SaleRecordStore.from_config``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool


@dataclass(frozen=True)
class SalesbookConfig:
    database_url: str = "sqlite://"
    echo: bool = False


def create_engine_from_config(config: SalesbookConfig) -> Engine:
    """Build the SQLAlchemy engine backing a sale store.

    SQLite engines share a single connection across threads; the store's
    lock is what makes that safe.
    """
    if config.database_url.startswith("sqlite"):
        return create_engine(
            config.database_url,
            echo=config.echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(config.database_url, echo=config.echo, pool_pre_ping=True)
