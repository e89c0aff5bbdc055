"""
Flat index -> (sub-model, offset) resolution for datasets made of several
consecutively numbered sources.
"""

from typing import Sequence, Tuple


def resolve_index(counts: Sequence[int], index: int) -> Tuple[int, int]:
    """
    Map a global index onto the source that owns it.

    Sources are visited in registration order, subtracting each count until
    the remaining index falls inside one.

    Example:
        >>> resolve_index([3, 5, 2], 7)
        (2, 0)

    Raises:
        IndexError: if ``index`` is negative or not below ``sum(counts)``
    """
    if index < 0:
        raise IndexError(f"Index {index} is negative")
    remaining = index
    for model, count in enumerate(counts):
        if remaining < count:
            return model, remaining
        remaining -= count
    raise IndexError(f"Index {index} out of range for {sum(counts)} examples")
