"""Tests for damage, hit dice and death saves."""

import pytest

from charsheet.character import prepare_actor
from charsheet.database import MemoryActorStore
from charsheet.documents import ItemDocument, ItemType
from charsheet.systems import (
    ActorError,
    apply_damage,
    calculate_damage,
    roll_class_hit_points,
    roll_death_save,
    roll_hit_die,
    spend_hit_die,
)
from charsheet.systems.hit_points import death_save_modifier


@pytest.fixture
def hero(make_actor, make_class, engine_config):
    """A prepared level 4 fighter with 20 max HP and Constitution 14."""
    actor = make_actor(items=[make_class("Fighter", 4)], con=14)
    actor.system.attributes.hp.max = 20
    actor.system.attributes.hp.value = 10
    prepare_actor(actor, engine_config)
    return actor


@pytest.fixture
def store(hero, engine_config):
    """A memory store holding the hero."""
    return MemoryActorStore([hero], engine_config)


class TestCalculateDamage:
    """Test damage and healing arithmetic."""

    def test_temp_hp_absorbs_first(self, hero):
        """Temporary hit points are lost before hit points."""
        hero.system.attributes.hp.temp = 5
        changes = calculate_damage(hero, 8)
        assert changes == {"system.attributes.hp.temp": 0, "system.attributes.hp.value": 7}

    def test_damage_stops_at_zero(self, hero):
        """Hit points never drop below 0."""
        assert calculate_damage(hero, 100)["system.attributes.hp.value"] == 0

    def test_healing_stops_at_max(self, hero):
        """Healing never exceeds the maximum plus temporary maximum."""
        assert calculate_damage(hero, -30)["system.attributes.hp.value"] == 20
        hero.system.attributes.hp.tempmax = 5
        assert calculate_damage(hero, -30)["system.attributes.hp.value"] == 25

    def test_healing_keeps_temp(self, hero):
        """Healing does not touch temporary hit points."""
        hero.system.attributes.hp.temp = 4
        assert calculate_damage(hero, -3)["system.attributes.hp.temp"] == 4

    def test_multiplier_rounds_down(self, hero):
        """Resistance halves damage, rounding down."""
        assert calculate_damage(hero, 7, 0.5)["system.attributes.hp.value"] == 7


class TestApplyDamage:
    """Test persisted damage."""

    async def test_damage_is_persisted(self, hero, store):
        """The store and the caller's document both change."""
        await apply_damage(hero, store, 4)
        assert hero.system.attributes.hp.value == 6
        assert (await store.get(hero.id)).system.attributes.hp.value == 6

    async def test_healing_from_zero_resets_death_saves(self, hero, store):
        """Regaining hit points clears death save counters."""
        await apply_damage(hero, store, 100)
        hero.system.attributes.death.success = 2
        hero.system.attributes.death.failure = 1
        await store.update(
            hero.id,
            {"system.attributes.death.success": 2, "system.attributes.death.failure": 1},
        )

        await apply_damage(hero, store, -5)

        stored = await store.get(hero.id)
        assert stored.system.attributes.hp.value == 5
        death = stored.system.attributes.death
        assert (death.success, death.failure) == (0, 0)
        assert hero.system.attributes.death.success == 0


class TestHitDice:
    """Test spending hit dice."""

    def test_spend_hit_die(self, hero, dice):
        """A hit die heals the roll plus Constitution."""
        roller = dice(6)
        spend = spend_hit_die(hero, roller)
        assert spend.hp_recovered == 8
        assert spend.denomination == "d10"
        assert roller.calls == [("d10", 2)]
        assert hero.system.attributes.hp.value == 18
        assert hero.system.attributes.hd == 3
        assert hero.items[0].system.hit_dice_used == 1

    def test_healing_is_capped(self, hero, dice):
        """Healing stops at maximum hit points."""
        hero.system.attributes.hp.value = 19
        assert spend_hit_die(hero, dice(10)).hp_recovered == 1
        assert hero.system.attributes.hp.value == 20

    def test_negative_roll_heals_nothing(self, make_actor, make_class, engine_config, dice):
        """A low roll with a Constitution penalty never deals damage."""
        actor = make_actor(items=[make_class(levels=1)], con=6)
        actor.system.attributes.hp.value = 5
        prepare_actor(actor, engine_config)
        assert spend_hit_die(actor, dice(1)).hp_recovered == 0
        assert actor.system.attributes.hp.value == 5

    def test_no_hit_die_available(self, hero, dice):
        """Nothing happens without an unspent die of the requested size."""
        assert spend_hit_die(hero, dice(6), "d8") is None
        hero.items[0].system.hit_dice_used = 4
        assert spend_hit_die(hero, dice(6)) is None

    async def test_roll_hit_die_persists(self, hero, store, dice):
        """Rolling a hit die outside a rest saves hit points and dice used."""
        roll = await roll_hit_die(hero, store, dice(3))
        assert roll.total == 5
        stored = await store.get(hero.id)
        assert stored.system.attributes.hp.value == 15
        assert stored.items[0].system.hit_dice_used == 1
        assert stored.system.attributes.hd == 3
        assert hero.system.attributes.hd == 3

    async def test_roll_hit_die_without_dice(self, hero, store, dice):
        """Nothing is persisted when no hit die is available."""
        assert await roll_hit_die(hero, store, dice(3), "d12") is None
        assert (await store.get(hero.id)).system.attributes.hp.value == 10

    def test_class_hit_points(self, hero, dice):
        """Level-up hit points roll the class hit die."""
        roll = roll_class_hit_points(hero.items[0], dice(7))
        assert roll.total == 7

    def test_class_hit_points_requires_class(self, dice):
        """Only class items have hit dice to roll."""
        with pytest.raises(ActorError):
            roll_class_hit_points(ItemDocument(name="Sword", type=ItemType.WEAPON), dice(7))


class TestDeathSaves:
    """Test death saving throws."""

    @pytest.fixture
    async def downed(self, hero, store):
        """The hero at 0 hit points."""
        await apply_damage(hero, store, 100)
        return hero

    async def test_not_dying(self, hero, store, engine_config, dice):
        """No death save is rolled above 0 HP."""
        assert await roll_death_save(hero, store, dice(15), engine_config) is None

    async def test_success(self, downed, store, engine_config, dice):
        """A roll of 10 or more is a success."""
        await roll_death_save(downed, store, dice(15), engine_config)
        stored = await store.get(downed.id)
        assert stored.system.attributes.death.success == 1
        assert stored.system.attributes.death.failure == 0

    async def test_failure(self, downed, store, engine_config, dice):
        """A roll below 10 is a failure."""
        await roll_death_save(downed, store, dice(5), engine_config)
        assert downed.system.attributes.death.failure == 1

    async def test_natural_one(self, downed, store, engine_config, dice):
        """A natural 1 counts as two failures."""
        await roll_death_save(downed, store, dice(1), engine_config)
        assert downed.system.attributes.death.failure == 2

    async def test_natural_twenty_revives(self, downed, store, engine_config, dice):
        """A natural 20 restores 1 hit point and clears the counters."""
        downed.system.attributes.death.failure = 2
        await roll_death_save(downed, store, dice(20), engine_config)
        stored = await store.get(downed.id)
        assert stored.system.attributes.hp.value == 1
        assert stored.system.attributes.death.failure == 0

    async def test_third_success_stabilizes(self, downed, store, engine_config, dice):
        """The third success clears the counters."""
        downed.system.attributes.death.success = 2
        await roll_death_save(downed, store, dice(12), engine_config)
        assert downed.system.attributes.death.success == 0
        assert downed.system.attributes.hp.value == 0

    async def test_dead_actors_do_not_roll(self, downed, store, engine_config, dice):
        """Three failures end death saves."""
        downed.system.attributes.death.failure = 3
        assert await roll_death_save(downed, store, dice(15), engine_config) is None

    async def test_modifier(self, downed, store, engine_config, dice):
        """Diamond soul and the global save bonus modify the roll."""
        downed.flags.diamond_soul = True
        downed.system.bonuses.abilities.save = "1"
        assert death_save_modifier(downed, engine_config) == 3
        roller = dice(6)
        roll = await roll_death_save(downed, store, roller, engine_config)
        assert roller.calls == [("d20", 3)]
        assert roll.total == 9
        assert downed.system.attributes.death.failure == 1
