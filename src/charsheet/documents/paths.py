"""Dotted field-path access for documents ("system.attributes.hp.value")."""

from collections.abc import Mapping, MutableMapping
from typing import Any

from pydantic import BaseModel

from .actor import ActorDocument


def _step(current: Any, key: str) -> Any:
    if isinstance(current, Mapping):
        if key not in current:
            raise KeyError(key)
        return current[key]
    if isinstance(current, BaseModel):
        if not hasattr(current, key):
            raise KeyError(key)
        return getattr(current, key)
    raise KeyError(key)


def get_path(obj: Any, path: str) -> Any:
    """
    Read a value at a dotted path.

    Raises:
        KeyError: If any segment of the path does not exist
    """
    current = obj
    for key in path.split("."):
        current = _step(current, key)
    return current


def has_path(obj: Any, path: str) -> bool:
    """Check whether a dotted path exists."""
    try:
        get_path(obj, path)
    except KeyError:
        return False
    return True


def set_path(obj: Any, path: str, value: Any) -> None:
    """
    Write a value at a dotted path, descending through models and dicts.

    Raises:
        KeyError: If an intermediate segment does not exist
    """
    *parents, leaf = path.split(".")
    target = obj
    for key in parents:
        target = _step(target, key)
    if isinstance(target, MutableMapping):
        target[leaf] = value
    elif isinstance(target, BaseModel):
        setattr(target, leaf, value)
    else:
        raise KeyError(path)


def apply_changes(obj: Any, changes: Mapping[str, Any]) -> None:
    """Apply a flat map of dotted paths to values."""
    for path, value in changes.items():
        set_path(obj, path, value)


def apply_item_patches(actor: ActorDocument, patches: list[dict[str, Any]]) -> None:
    """
    Apply item patch records (``{"id": ..., "system.uses.value": 3}``) in order.

    Raises:
        KeyError: If a patch references an item the actor does not own
    """
    for patch in patches:
        item = actor.get_item(patch["id"])
        if item is None:
            raise KeyError(f"Actor {actor.id} owns no item {patch['id']}")
        apply_changes(item, {k: v for k, v in patch.items() if k != "id"})
