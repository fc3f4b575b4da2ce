"""
Merge policies for pipeline state fields.

Attached to state keys via ``Annotated[..., reducer]``; LangGraph applies them
whenever a stage returns a patch. Keys without a reducer use LangGraph's
last-value channel, i.e. plain replace. Every reducer here is total and
returns a fresh object, so no stage can observe another stage's partial write.
"""

from __future__ import annotations

from typing import Any


def merge_dicts(left: dict | None, right: dict | None) -> dict:
    """Shallow merge: keys in ``right`` win, keys absent from it are preserved."""
    merged = dict(left or {})
    merged.update(right or {})
    return merged


def append_or_replace(left: list | None, right: Any) -> list:
    """A list replaces the whole value; any single element is appended."""
    if isinstance(right, list):
        return list(right)
    if right is None:
        return list(left or [])
    return [*(left or []), right]


def keep_error(left: str | None, right: str | None) -> str | None:
    """Replace the error message, but never let a patch clear one that is set."""
    return right if right else left
