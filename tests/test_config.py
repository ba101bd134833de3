"""Tests for SalesbookConfig and engine construction."""

import dataclasses

import pytest
from sqlalchemy.pool import StaticPool

from salesbook.config import SalesbookConfig, create_engine_from_config


class TestSalesbookConfig:
    def test_defaults(self) -> None:
        cfg = SalesbookConfig()
        assert cfg.database_url == "sqlite://"
        assert cfg.echo is False

    def test_frozen(self) -> None:
        cfg = SalesbookConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.echo = True  # type: ignore[misc]


class TestCreateEngine:
    def test_sqlite_uses_single_shared_connection(self) -> None:
        engine = create_engine_from_config(SalesbookConfig())
        try:
            assert isinstance(engine.pool, StaticPool)
            assert engine.dialect.name == "sqlite"
        finally:
            engine.dispose()

    def test_echo_passed_through(self) -> None:
        engine = create_engine_from_config(SalesbookConfig(echo=True))
        try:
            assert engine.echo is True
        finally:
            engine.dispose()
