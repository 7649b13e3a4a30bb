"""Tests for actor records and stores."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from charsheet.database import (
    ActorNotFoundError,
    ActorRecord,
    ItemRecord,
    MemoryActorStore,
    SqlActorStore,
)
from charsheet.documents import ActorType


@pytest.fixture
def hero(make_actor, make_class, make_armor):
    """An unprepared level 3 fighter in light armor."""
    actor = make_actor(
        items=[make_class("Fighter", 3), make_armor("light", 11, sort=1)],
        name="Hero",
        dex=14,
    )
    actor.system.attributes.hp.max = 28
    actor.system.attributes.hp.value = 28
    return actor


class TestActorRecord:
    """Test converting between documents and records."""

    def test_round_trip(self, hero):
        """A document survives conversion to a record and back."""
        record = ActorRecord.from_document(hero)
        assert record.actor_type == "character"
        assert len(record.items) == 2
        assert all(isinstance(item, ItemRecord) for item in record.items)

        document = record.to_document()
        assert document.id == hero.id
        assert document.system.abilities["dex"].value == 14
        assert [item.id for item in document.items] == [item.id for item in hero.items]


class TestSqlActorStore:
    """Test the SQLAlchemy backed store."""

    async def test_add_and_get(self, db_session: AsyncSession, hero, engine_config):
        """Stored actors are returned prepared."""
        store = SqlActorStore(db_session, engine_config)
        await store.add(hero)
        await db_session.commit()

        actor = await store.get(hero.id)
        assert actor.name == "Hero"
        assert actor.system.details.level == 3
        assert actor.system.attributes.ac.value == 13

    async def test_get_missing(self, db_session: AsyncSession, engine_config):
        """Unknown ids raise ActorNotFoundError."""
        store = SqlActorStore(db_session, engine_config)
        with pytest.raises(ActorNotFoundError):
            await store.get("missing")

    async def test_apply_updates(self, db_session: AsyncSession, hero, engine_config):
        """Field changes and item patches are saved together."""
        store = SqlActorStore(db_session, engine_config)
        await store.add(hero)
        fighter = hero.items[0]

        actor = await store.apply_updates(
            hero.id,
            {"system.attributes.hp.value": 12},
            [fighter.to_patch(**{"system.hit_dice_used": 2})],
        )
        await db_session.commit()

        assert actor.system.attributes.hp.value == 12
        assert actor.system.attributes.hd == 1

        result = await db_session.execute(
            select(ActorRecord.system).where(ActorRecord.id == hero.id)
        )
        assert result.scalar_one()["attributes"]["hp"]["value"] == 12
        result = await db_session.execute(
            select(ItemRecord.system).where(ItemRecord.id == fighter.id)
        )
        assert result.scalar_one()["hit_dice_used"] == 2

    async def test_failed_update_changes_nothing(
        self, db_session: AsyncSession, hero, engine_config
    ):
        """A bad item patch rejects the field changes as well."""
        store = SqlActorStore(db_session, engine_config)
        await store.add(hero)

        with pytest.raises(KeyError):
            await store.apply_updates(
                hero.id,
                {"system.attributes.hp.value": 1},
                [{"id": "no-such-item", "system.uses.value": 1}],
            )

        assert (await store.get(hero.id)).system.attributes.hp.value == 28

    async def test_update_resets_death_saves(self, db_session: AsyncSession, hero, engine_config):
        """Healing a downed actor clears its death saves."""
        hero.system.attributes.hp.value = 0
        hero.system.attributes.death.failure = 2
        store = SqlActorStore(db_session, engine_config)
        await store.add(hero)

        actor = await store.update(hero.id, {"system.attributes.hp.value": 4})
        assert actor.system.attributes.death.failure == 0

    async def test_polymorphed_actor(
        self, db_session: AsyncSession, hero, make_actor, engine_config
    ):
        """A transformed actor merges saves from its stored original."""
        hero.system.abilities["dex"].proficient = 1
        form = make_actor(ActorType.NPC, name="Wolf", dex=10)
        form.system.abilities["dex"].proficient = 1
        form.flags.is_polymorphed = True
        form.flags.original_actor = hero.id
        form.flags.transform_options.merge_saves = True

        store = SqlActorStore(db_session, engine_config)
        await store.add(hero)
        await store.add(form)

        wolf = await store.get(form.id)
        # Hero: +2 Dexterity and +2 proficiency; wolf: +0 and +2
        assert wolf.system.abilities["dex"].save == 4

    async def test_missing_original(self, db_session: AsyncSession, make_actor, engine_config):
        """A transformed actor whose original is gone is prepared on its own."""
        form = make_actor(ActorType.NPC, dex=10)
        form.system.abilities["dex"].proficient = 1
        form.flags.is_polymorphed = True
        form.flags.original_actor = "gone"
        form.flags.transform_options.merge_saves = True

        store = SqlActorStore(db_session, engine_config)
        await store.add(form)

        assert (await store.get(form.id)).system.abilities["dex"].save == 2


class TestMemoryActorStore:
    """Test the in-process store."""

    async def test_get_returns_prepared_copy(self, hero, engine_config):
        """Callers never hold the stored document."""
        store = MemoryActorStore([hero], engine_config)
        first = await store.get(hero.id)
        first.system.attributes.hp.value = 1

        second = await store.get(hero.id)
        assert second.system.attributes.hp.value == 28
        assert second.system.details.level == 3

    async def test_stores_a_copy(self, hero, engine_config):
        """Changing the original document after adding it has no effect."""
        store = MemoryActorStore([hero], engine_config)
        hero.name = "Changed"
        assert (await store.get(hero.id)).name == "Hero"

    async def test_get_missing(self, engine_config):
        """Unknown ids raise ActorNotFoundError."""
        with pytest.raises(ActorNotFoundError):
            await MemoryActorStore(config=engine_config).get("missing")

    async def test_update_items(self, hero, engine_config):
        """Item patches are applied on their own."""
        store = MemoryActorStore(config=engine_config)
        store.add(hero)
        actor = await store.update_items(
            hero.id, [hero.items[0].to_patch(**{"system.hit_dice_used": 3})]
        )
        assert actor.system.attributes.hd == 0

    async def test_bad_change_is_atomic(self, hero, engine_config):
        """An unknown path leaves the stored actor unchanged."""
        store = MemoryActorStore([hero], engine_config)
        with pytest.raises(KeyError):
            await store.update(
                hero.id,
                {"system.attributes.hp.value": 3, "system.nothing.here": 1},
            )
        assert (await store.get(hero.id)).system.attributes.hp.value == 28
