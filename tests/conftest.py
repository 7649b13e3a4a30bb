"""Shared fixtures for all tests."""

import os
from typing import Any

import pytest
import structlog
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from charsheet.database.models import Base
from charsheet.documents import (
    Ability,
    ActorDocument,
    ActorType,
    ArmorData,
    ItemDocument,
    ItemSystem,
    ItemType,
)
from charsheet.rules import EngineConfig, load_rules
from charsheet.systems import DiceResult


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo global logging configuration so no test keeps a closed capture stream."""
    yield
    structlog.reset_defaults()


# Set the test database URL before any settings can be cached
@pytest.fixture(scope="session", autouse=True)
def use_test_database(tmp_path_factory):
    """Force all tests to use a temporary database instead of the default one."""
    test_db_dir = tmp_path_factory.mktemp("charsheet_test")
    os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{test_db_dir / 'test_charsheet.db'}"

    import charsheet.database.engine as engine_module

    engine_module._engine = None
    engine_module._async_session_factory = None

    from charsheet.config import get_settings
    from charsheet.rules import get_engine_config

    get_settings.cache_clear()
    get_engine_config.cache_clear()

    yield

    engine_module._engine = None
    engine_module._async_session_factory = None


@pytest.fixture
async def db_session():
    """Create a test database session with in-memory SQLite."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()

    await engine.dispose()


@pytest.fixture(scope="session")
def rules():
    """The packaged rules tables."""
    return load_rules()


@pytest.fixture
def engine_config(rules):
    """Engine configuration with default toggles."""
    return EngineConfig(rules=rules)


class FixedDiceRoller:
    """Dice roller that returns queued face values."""

    def __init__(self, *faces: int) -> None:
        self.faces = list(faces)
        self.calls: list[tuple[str, int]] = []

    def _next(self) -> int:
        return self.faces.pop(0) if self.faces else 1

    def roll_hit_die(self, denomination: str, modifier: int = 0) -> DiceResult:
        face = self._next()
        self.calls.append((denomination, modifier))
        return DiceResult(rolls=[face], modifier=modifier, total=face + modifier)

    def roll_d20(self, modifier: int = 0) -> DiceResult:
        face = self._next()
        self.calls.append(("d20", modifier))
        return DiceResult(rolls=[face], modifier=modifier, total=face + modifier)


@pytest.fixture
def dice():
    """Factory for dice rollers with predetermined faces."""
    return FixedDiceRoller


@pytest.fixture
def make_class():
    """Factory for class items."""

    def _make(
        name: str = "Fighter",
        levels: int = 1,
        hit_dice: str = "d10",
        hit_dice_used: int = 0,
        progression: str = "none",
        sort: int = 0,
        **system: Any,
    ) -> ItemDocument:
        return ItemDocument(
            name=name,
            type=ItemType.CLASS,
            sort=sort,
            system=ItemSystem(
                levels=levels,
                hit_dice=hit_dice,
                hit_dice_used=hit_dice_used,
                spellcasting={"progression": progression},
                **system,
            ),
        )

    return _make


@pytest.fixture
def make_armor():
    """Factory for equipped armor and shields."""

    def _make(
        armor_type: str = "light",
        value: int = 11,
        dex: int | None = None,
        equipped: bool = True,
        sort: int = 0,
        name: str | None = None,
    ) -> ItemDocument:
        return ItemDocument(
            name=name or f"{armor_type.title()} Armor",
            type=ItemType.EQUIPMENT,
            sort=sort,
            system=ItemSystem(
                equipped=equipped,
                armor=ArmorData(type=armor_type, value=value, dex=dex),
            ),
        )

    return _make


@pytest.fixture
def make_actor():
    """Factory for actor documents with ability scores."""

    def _make(
        actor_type: ActorType = ActorType.CHARACTER,
        items: list[ItemDocument] | None = None,
        name: str = "Tester",
        **scores: int,
    ) -> ActorDocument:
        actor = ActorDocument(name=name, type=actor_type, items=items or [])
        for key in ("str", "dex", "con", "int", "wis", "cha"):
            actor.system.abilities[key] = Ability(value=scores.get(key, 10))
        return actor

    return _make
