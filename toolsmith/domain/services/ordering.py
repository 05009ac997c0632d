"""
Sibling ordering.

A parent's children (steps of a project, fields of a step, choices of a
field) form one arena whose order values are always 1..N with no gaps.
Every mutation re-indexes the whole arena in a single pass.

All functions are pure: no DB, no logging.
"""

from typing import Any, List, Optional, Sequence, TypeVar

T = TypeVar("T")


def _key(attr: str):
    return lambda item: getattr(item, attr) or 0


def compact(siblings: Sequence[T], attr: str) -> List[T]:
    """
    Re-index siblings to 1..N, preserving their relative order.

    >>> [s.step_order for s in compact(steps_1_3, "step_order")]   # after deleting 2
    [1, 2]
    """
    ordered = sorted(siblings, key=_key(attr))
    for position, item in enumerate(ordered, start=1):
        setattr(item, attr, position)
    return ordered


def place(siblings: Sequence[T], item: T, attr: str, position: Optional[int] = None) -> List[T]:
    """
    Insert `item` among `siblings` at 1-based `position` (append when None
    or past the end) and re-index.
    """
    ordered = sorted((s for s in siblings if s is not item), key=_key(attr))
    if position is None or position > len(ordered):
        ordered.append(item)
    else:
        ordered.insert(max(position, 1) - 1, item)
    for index, sibling in enumerate(ordered, start=1):
        setattr(sibling, attr, index)
    return ordered


def remove(siblings: Sequence[T], item: T, attr: str) -> List[T]:
    """Drop `item` and close the gap it leaves."""
    return compact([s for s in siblings if s is not item], attr)


def reorder(siblings: Sequence[T], ordered_ids: Sequence[Any], attr: str) -> List[T]:
    """
    Apply an explicit order.

    Raises:
        ValueError: if ordered_ids is not exactly a permutation of the
            siblings' ids.
    """
    by_id = {str(s.id): s for s in siblings}
    requested = [str(i) for i in ordered_ids]

    if len(requested) != len(set(requested)):
        raise ValueError("Order contains duplicate ids")
    if set(requested) != set(by_id):
        missing = sorted(set(by_id) - set(requested))
        unknown = sorted(set(requested) - set(by_id))
        raise ValueError(
            f"Order must list every sibling exactly once (missing={missing}, unknown={unknown})"
        )

    ordered = [by_id[i] for i in requested]
    for position, item in enumerate(ordered, start=1):
        setattr(item, attr, position)
    return ordered


def is_contiguous(values: Sequence[int]) -> bool:
    """True when values are exactly 1..N in some order."""
    return sorted(values) == list(range(1, len(values) + 1))
