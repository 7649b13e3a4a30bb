"""Command line entry point for charsheet."""

import argparse
import asyncio
import dataclasses
import sys
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from charsheet.character import prepare_actor
from charsheet.config import configure_logging, get_settings
from charsheet.database import MemoryActorStore
from charsheet.documents import ActorDocument
from charsheet.rules import EngineConfig, RulesLoadError, RulesValidationError, get_engine_config
from charsheet.systems import RandomDiceRoller, RestWorkflow

logger = structlog.get_logger(__name__)


class ActorFileError(Exception):
    """Raised when an actor file cannot be read."""

    pass


def load_actor_file(path: Path) -> ActorDocument:
    """
    Load an actor document from a YAML file.

    Raises:
        ActorFileError: If the file is missing, unparsable or invalid
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ActorFileError(f"File not found: {path}")
    except yaml.YAMLError as e:
        raise ActorFileError(f"YAML parsing error in {path}: {e}")

    if not isinstance(data, dict):
        raise ActorFileError(f"Actor file must contain a mapping: {path}")

    try:
        return ActorDocument.model_validate(data)
    except ValidationError as e:
        raise ActorFileError(f"Invalid actor in {path}: {e}")


def summarize_actor(actor: ActorDocument) -> dict[str, Any]:
    """Derived values worth showing for a prepared actor."""
    attributes = actor.system.attributes
    return {
        "name": actor.name,
        "type": actor.type.value,
        "level": actor.system.details.level,
        "prof": attributes.prof,
        "hp": f"{attributes.hp.value}/{attributes.hp.max}",
        "hit_dice": attributes.hd,
        "ac": {
            "calc": attributes.ac.calc,
            "value": attributes.ac.value,
            "warnings": list(attributes.ac.warnings),
        },
        "initiative": attributes.init.total,
        "spell_dc": attributes.spelldc,
        "abilities": {
            key: {"value": ability.value, "mod": ability.mod, "save": ability.save}
            for key, ability in actor.system.abilities.items()
        },
        "skills": {
            key: {"total": skill.total, "passive": skill.passive}
            for key, skill in actor.system.skills.items()
        },
        "spells": {
            key: f"{slot.value}/{slot.max}"
            for key, slot in actor.system.spells.items()
            if slot.max
        },
        "encumbrance": actor.system.attributes.encumbrance.model_dump(),
    }


def prepare_command(args: argparse.Namespace, config: EngineConfig) -> dict[str, Any]:
    """Prepare an actor file and summarize it."""
    actor = load_actor_file(args.actor)
    prepare_actor(actor, config)
    return summarize_actor(actor)


async def rest_command(args: argparse.Namespace, config: EngineConfig) -> dict[str, Any]:
    """Run a rest against an in-memory copy of an actor file."""
    document = load_actor_file(args.actor)
    store = MemoryActorStore([document], config)
    actor = await store.get(document.id)

    workflow = RestWorkflow(store, RandomDiceRoller(args.seed), config)
    if args.long:
        result = await workflow.long_rest(actor, dialog=False, new_day=args.new_day)
    else:
        result = await workflow.short_rest(actor, dialog=False, auto_hd=args.auto_hd)

    return {
        "result": dataclasses.asdict(result),
        "actor": summarize_actor(actor),
    }


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(prog="charsheet", description="Character sheet engine")
    subparsers = parser.add_subparsers(dest="command", required=True)

    prepare = subparsers.add_parser("prepare", help="Prepare an actor and print derived data")
    prepare.add_argument("actor", type=Path, help="Actor YAML file")

    rest = subparsers.add_parser("rest", help="Take a rest and print the result")
    rest.add_argument("actor", type=Path, help="Actor YAML file")
    rest.add_argument("--long", action="store_true", help="Take a long rest")
    rest.add_argument(
        "--no-new-day",
        dest="new_day",
        action="store_false",
        help="The long rest does not start a new day",
    )
    rest.add_argument("--auto-hd", action="store_true", help="Spend hit dice automatically")
    rest.add_argument("--seed", type=int, default=None, help="Random seed for hit dice")
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Run the command line interface.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    configure_logging(get_settings())

    try:
        config = get_engine_config()
        if args.command == "prepare":
            output = prepare_command(args, config)
        else:
            output = asyncio.run(rest_command(args, config))
    except (ActorFileError, RulesLoadError, RulesValidationError) as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1

    yaml.safe_dump(output, sys.stdout, sort_keys=False)
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
