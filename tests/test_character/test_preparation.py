"""Tests for the data preparation pipeline."""

import pytest

from charsheet.character import (
    calculate_class_levels,
    collect_classes,
    get_primary_class,
    prepare_actor,
    proficiency_for_level,
)
from charsheet.character.classes import find_class_with_hit_die
from charsheet.documents import ActorDocument, ActorType, ItemDocument, ItemSystem, ItemType


class TestProficiencyForLevel:
    """Test the proficiency bonus progression."""

    @pytest.mark.parametrize(
        "level,expected", [(0, 1), (1, 2), (4, 2), (5, 3), (9, 4), (13, 5), (17, 6), (20, 6)]
    )
    def test_proficiency(self, level, expected):
        """Proficiency rises every four levels."""
        assert proficiency_for_level(level) == expected


class TestClassAggregation:
    """Test class collection and level totals."""

    def test_levels_and_hit_dice(self, make_actor, make_class):
        """Levels sum across classes and hit dice subtract those used."""
        actor = make_actor(
            items=[
                make_class("Fighter", 3, hit_dice_used=1),
                make_class("Wizard", 2, "d6", hit_dice_used=2, sort=1),
            ]
        )
        levels = calculate_class_levels(actor)
        assert levels.level == 5
        assert levels.hit_dice == 2

    def test_class_without_levels_counts_once(self, make_actor, make_class):
        """A class item with no levels counts as one level."""
        actor = make_actor(items=[make_class(levels=0)])
        assert calculate_class_levels(actor).level == 1

    def test_collect_classes_by_identifier(self, make_actor, make_class):
        """Classes are keyed by identifier."""
        actor = make_actor(items=[make_class("Path Walker", 1)])
        assert list(collect_classes(actor)) == ["path-walker"]

    def test_vehicles_have_no_classes(self, make_actor, make_class):
        """Only characters and NPCs collect classes."""
        vehicle = make_actor(ActorType.VEHICLE, items=[make_class()])
        assert collect_classes(vehicle) == {}

    def test_primary_class(self, make_actor, make_class):
        """The class with the most levels is primary."""
        wizard = make_class("Wizard", 4, "d6", sort=1)
        actor = make_actor(items=[make_class("Fighter", 1), wizard])
        assert get_primary_class(actor) == wizard.id
        assert get_primary_class(make_actor()) == ""

    def test_find_class_with_hit_die(self, make_actor, make_class):
        """Only classes with unspent dice of the requested size match."""
        fighter = make_class("Fighter", 2, hit_dice_used=2)
        wizard = make_class("Wizard", 2, "d6", sort=1)
        actor = make_actor(items=[fighter, wizard])
        assert find_class_with_hit_die(actor) is wizard
        assert find_class_with_hit_die(actor, "d10") is None
        assert find_class_with_hit_die(actor, "d6") is wizard


class TestPrepareActor:
    """Test the complete preparation pass."""

    def test_character(self, make_actor, make_class, engine_config):
        """Characters derive level, hit dice and proficiency from classes."""
        actor = make_actor(
            items=[
                make_class("Fighter", 3, hit_dice_used=1),
                make_class("Wizard", 2, "d6", sort=1),
            ]
        )
        prepared = prepare_actor(actor, engine_config)
        assert actor.system.details.level == 5
        assert actor.system.attributes.hd == 4
        assert actor.system.attributes.prof == 3
        assert set(prepared.classes) == {"fighter", "wizard"}

    @pytest.mark.parametrize("cr,prof", [(0, 2), (0.5, 2), (5, 3), (17, 6)])
    def test_npc_proficiency(self, make_actor, engine_config, cr, prof):
        """NPC proficiency follows challenge rating, at least that of CR 1."""
        npc = make_actor(ActorType.NPC)
        npc.system.details.cr = cr
        prepare_actor(npc, engine_config)
        assert npc.system.attributes.prof == prof

    def test_vehicle(self, make_actor, make_class, engine_config):
        """Vehicles have no proficiency, skills or attunement."""
        item = make_class()
        item.system.attunement = 2
        vehicle = make_actor(ActorType.VEHICLE, items=[item])
        prepare_actor(vehicle, engine_config)
        assert vehicle.system.attributes.prof == 0
        assert vehicle.system.skills == {}
        assert vehicle.system.attributes.attunement.value == 0

    def test_attunement(self, make_actor, engine_config):
        """Only attuned items count toward attunement."""
        items = [
            ItemDocument(name="Ring", type=ItemType.EQUIPMENT, system=ItemSystem(attunement=2)),
            ItemDocument(name="Cloak", type=ItemType.EQUIPMENT, system=ItemSystem(attunement=2)),
            ItemDocument(name="Wand", type=ItemType.EQUIPMENT, system=ItemSystem(attunement=1)),
        ]
        actor = make_actor(items=items)
        prepare_actor(actor, engine_config)
        assert actor.system.attributes.attunement.value == 2

    def test_preparation_is_idempotent(self, make_actor, make_class, make_armor, engine_config):
        """Preparing an already prepared actor changes nothing."""
        actor = make_actor(
            items=[make_class("Paladin", 5, progression="half"), make_armor("heavy", 18)],
            str=16,
        )
        actor.flags.jack_of_all_trades = True
        actor.system.bonuses.abilities.check = "@abilities.str.mod"
        prepare_actor(actor, engine_config)
        first = actor.model_dump()
        prepare_actor(actor, engine_config)
        assert actor.model_dump() == first

    def test_unknown_keys_are_preserved(self, engine_config):
        """Data the engine does not know about survives preparation."""
        actor = ActorDocument.model_validate(
            {"name": "Extra", "system": {"details": {"biography": "Born in a barn"}}}
        )
        prepare_actor(actor, engine_config)
        assert actor.system.details.model_dump()["biography"] == "Born in a barn"
