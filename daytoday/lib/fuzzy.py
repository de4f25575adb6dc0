from collections.abc import Sequence
from difflib import get_close_matches
from typing import TypeVar

from ..core.errors import AmbiguousError
from ..core.models import DayTask, Routine

__all__ = ["find_in_pool"]

FUZZY_MATCH_CUTOFF = 0.8

T = TypeVar("T", Routine, DayTask)


def _match_uuid_prefix(ref: str, pool: Sequence[T]) -> T | None:
    ref_lower = ref.lower()
    matches = [item for item in pool if item.id.startswith(ref_lower)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        exact = next((item for item in matches if item.id == ref), None)
        if exact:
            return exact

        sample = [item.id[:8] for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_exact(ref: str, pool: Sequence[T]) -> T | None:
    ref_lower = ref.lower()
    return next((item for item in pool if item.title.lower() == ref_lower), None)


def _match_substring(ref: str, pool: Sequence[T]) -> T | None:
    ref_lower = ref.lower()
    matches = [item for item in pool if ref_lower in item.title.lower()]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = [item.title for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_fuzzy(ref: str, pool: Sequence[T]) -> T | None:
    titles = [item.title.lower() for item in pool]
    matches = get_close_matches(ref.lower(), titles, n=1, cutoff=FUZZY_MATCH_CUTOFF)
    if matches:
        return pool[titles.index(matches[0])]
    return None


def find_in_pool(ref: str, pool: Sequence[T]) -> T | None:
    if not pool or not ref:
        return None
    return (
        _match_exact(ref, pool)
        or _match_uuid_prefix(ref, pool)
        or _match_substring(ref, pool)
        or _match_fuzzy(ref, pool)
    )
