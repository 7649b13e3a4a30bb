"""Coin conversion into the highest denominations."""

from typing import TYPE_CHECKING

import structlog

from charsheet.documents import ActorDocument
from charsheet.rules import EngineConfig

from .updates import commit_updates

if TYPE_CHECKING:
    from charsheet.database.store import ActorStore

logger = structlog.get_logger(__name__)


def calculate_currency_conversion(
    currency: dict[str, int], config: EngineConfig
) -> dict[str, int]:
    """
    Convert coins upward along the configured conversion chain.

    Denominations are processed from least to most valuable so that change
    carries all the way up.

    Examples:
        25 cp, 0 sp, 10 gp with the standard chain
        -> 5 cp, 2 sp, 0 gp, 1 pp
    """
    converted = dict(currency)
    for denomination, definition in reversed(list(config.rules.currencies.items())):
        conversion = definition.conversion
        if conversion is None:
            continue
        change = converted.get(denomination, 0) // conversion.each
        converted[denomination] = converted.get(denomination, 0) - change * conversion.each
        converted[conversion.into] = converted.get(conversion.into, 0) + change
    return converted


async def convert_currency(
    actor: ActorDocument, store: "ActorStore", config: EngineConfig
) -> ActorDocument:
    """Convert the actor's coins to the fewest coins possible and persist them."""
    before = actor.system.currency.model_dump()
    after = calculate_currency_conversion(before, config)
    changes = {f"system.currency.{denomination}": count for denomination, count in after.items()}

    logger.info("currency_converted", actor_id=actor.id, before=before, after=after)
    return await commit_updates(actor, store, changes)
