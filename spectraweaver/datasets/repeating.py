"""
Dataset wrapper that repeats a small dataset or balances its classes.
"""

import logging
from typing import List

from spectraweaver.spectra.spectrum import Spectrum

from .base import SpectraDataset
from .indexing import resolve_index

logger = logging.getLogger(__name__)


class RepeatingDataset(SpectraDataset):
    """
    Repeat the wrapped dataset to approach ``desired_size``.

    Without balancing the whole dataset is repeated ``desired_size // size``
    times, but only when the desired size is more than twice the natural one.
    With ``balance`` every non-empty class is oversampled up to the size of
    the largest class (or ``desired_size / classes`` if that is larger);
    examples within a class are cycled in index order.

    Balancing scans ``class_for_index`` over the whole wrapped dataset once,
    so it is meant for file backed datasets.
    """

    kind = "repeat"

    def __init__(self, dataset: SpectraDataset, desired_size: int, balance: bool = False):
        super().__init__(seed=dataset.seed)
        self.dataset = dataset
        self.balance = balance
        self.repetition = 1
        self._members: List[List[int]] = []
        self._targets: List[int] = []

        inner_size = dataset.size()
        if balance:
            self._build_balance(desired_size)
        elif inner_size > 0 and desired_size / 2 > inner_size:
            self.repetition = desired_size // inner_size
            logger.info(f"Repeating dataset of {inner_size} examples {self.repetition} times")

    def _build_balance(self, desired_size: int):
        members: List[List[int]] = [[] for _ in range(self.dataset.classes_count())]
        for index in range(self.dataset.size()):
            members[self.dataset.class_for_index(index)].append(index)

        populated = [m for m in members if m]
        if not populated:
            return
        target = max(max(len(m) for m in populated), desired_size // len(populated))
        self._members = members
        self._targets = [target if m else 0 for m in members]
        logger.info(f"Balancing {len(populated)} classes to {target} examples each")

    def _inner_index(self, index: int) -> int:
        if self.balance and self._targets:
            class_index, offset = resolve_index(self._targets, index)
            members = self._members[class_index]
            return members[offset % len(members)]
        return index % self.dataset.size()

    def _get_impl(self, index: int) -> Spectrum:
        return self.dataset.get(self._inner_index(index))

    def size(self) -> int:
        if self.balance and self._targets:
            return sum(self._targets)
        return self.dataset.size() * self.repetition

    def class_for_index(self, index: int) -> int:
        self._check_index(index)
        if self.balance and self._targets:
            class_index, _ = resolve_index(self._targets, index)
            return class_index
        return self.dataset.class_for_index(index % self.dataset.size())

    def class_counts(self) -> List[int]:
        if self.balance and self._targets:
            return list(self._targets)
        return [count * self.repetition for count in self.dataset.class_counts()]

    def model_string_for_class(self, class_index: int) -> str:
        return self.dataset.model_string_for_class(class_index)

    def description(self) -> str:
        if self.balance:
            return f"balanced({self.dataset.description()})"
        return f"repeated x{self.repetition}({self.dataset.description()})"

    def _after_clone(self):
        self.dataset = self.dataset.clone()

    def close(self):
        self.dataset.close()
