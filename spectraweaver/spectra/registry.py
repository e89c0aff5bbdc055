"""
Model registry: circuit model labels -> stable class indices.

Labels are canonicalized before comparison so that structurally equivalent
descriptions (different case, instance parameters, a leading series
resistance) collapse onto one class. Indices are handed out in first-seen
order, which makes class numbering reproducible for a fixed input ordering.
"""

import logging
import re
from typing import Dict, List

logger = logging.getLogger(__name__)

SINGLE_ELEMENT_LABELS = ("r", "c", "w", "p", "l")
UNION_LABEL = "Union"

_BRACKETS = re.compile(r"\{[^}]*\}")


def purge_param_brackets(model: str) -> str:
    """Strip ``{...}`` parameter blocks from a model string."""
    return _BRACKETS.sub("", model)


def split_series(model: str) -> List[str]:
    """Split a model string at its top-level series operators."""
    parts = []
    depth = 0
    current = []
    for ch in model:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "-" and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


def remove_series_resistance(model: str) -> str:
    """
    Drop plain resistors that sit in series at the top level.

    ``r-rc`` and ``rc-r`` both reduce to ``rc``. A model made only of series
    resistors keeps a single ``r``.
    """
    parts = split_series(model)
    kept = [part for part in parts if part != "r"]
    if not kept:
        return "r" if any(part == "r" for part in parts) else ""
    return "-".join(kept)


def normalize_model_label(model: str) -> str:
    """Canonical form of a model label used for class assignment."""
    label = "".join(model.split()).lower()
    label = purge_param_brackets(label)
    label = remove_series_resistance(label)
    if len(label) < 2 and label not in SINGLE_ELEMENT_LABELS:
        label = UNION_LABEL
    return label


class ModelRegistry:
    """
    Deduplicates model labels into class indices.

    Built single threaded during dataset construction; afterwards it is only
    read, so dataset clones share one instance.
    """

    def __init__(self):
        self._labels: List[str] = []
        self._index: Dict[str, int] = {}

    def intern(self, model: str) -> int:
        """Return the class index for ``model``, appending a new class if unseen."""
        label = normalize_model_label(model)
        index = self._index.get(label)
        if index is None:
            index = len(self._labels)
            self._labels.append(label)
            self._index[label] = index
            logger.debug(f"New model {index}: {label}")
        return index

    def label_for_class(self, class_index: int) -> str:
        if 0 <= class_index < len(self._labels):
            return self._labels[class_index]
        return "invalid"

    def index_of(self, model: str) -> int:
        """Class index of an already interned model; KeyError if unknown."""
        return self._index[normalize_model_label(model)]

    @property
    def labels(self) -> List[str]:
        return list(self._labels)

    def __len__(self) -> int:
        return len(self._labels)

    def __contains__(self, model: str) -> bool:
        return normalize_model_label(model) in self._index
