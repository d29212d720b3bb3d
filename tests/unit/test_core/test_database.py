"""Tests for the process-wide engine holder."""

import pytest
from sqlalchemy import text

import pet_adoption_api.core.database as db_module
from pet_adoption_api.core.database import (
    dispose_engine,
    get_engine,
    get_session_factory,
    init_engine,
    standalone_session,
)

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def no_engine(monkeypatch):
    monkeypatch.setattr(db_module, "_engine", None)
    monkeypatch.setattr(db_module, "_session_factory", None)


class TestAccessorsBeforeInit:
    def test_engine(self, no_engine) -> None:
        with pytest.raises(RuntimeError, match="Database engine not initialized"):
            get_engine()

    def test_session_factory(self, no_engine) -> None:
        with pytest.raises(RuntimeError, match="Session factory not initialized"):
            get_session_factory()


class TestInitEngine:
    @pytest.mark.asyncio
    async def test_accessors_return_new_engine(self) -> None:
        engine = init_engine(MEMORY_URL)
        try:
            assert get_engine() is engine
            assert get_session_factory().kw["bind"] is engine
        finally:
            await dispose_engine()

    @pytest.mark.asyncio
    async def test_sqlite_foreign_keys_on(self) -> None:
        init_engine(MEMORY_URL)
        try:
            async with get_session_factory()() as session:
                assert (await session.execute(text("PRAGMA foreign_keys"))).scalar_one() == 1
        finally:
            await dispose_engine()


class TestDisposeEngine:
    @pytest.mark.asyncio
    async def test_clears_state(self) -> None:
        init_engine(MEMORY_URL)
        await dispose_engine()
        assert db_module._engine is None
        assert db_module._session_factory is None

    @pytest.mark.asyncio
    async def test_noop_without_engine(self, no_engine) -> None:
        await dispose_engine()
        assert db_module._engine is None


class TestStandaloneSession:
    @pytest.mark.asyncio
    async def test_engine_lives_for_the_block(self) -> None:
        async with standalone_session(MEMORY_URL) as session:
            assert (await session.execute(text("SELECT 1"))).scalar_one() == 1
            assert db_module._engine is not None
        assert db_module._engine is None
