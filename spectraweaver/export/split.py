"""
Train/test routing of exported examples.

Both strategies draw their random number from ``(seed, index)`` so the
decision for an index does not depend on thread scheduling. The stratified
strategy additionally keeps every class represented in the test split.
"""

import logging
import threading
from typing import Dict, Tuple

from spectraweaver.datasets.base import sample_rng

logger = logging.getLogger(__name__)

TRAIN = "train"
TEST = "test"

# keeps split draws independent from the dataset's own per-index noise
_SPLIT_STREAM = 0x5EED5EED


class ClassCounters:
    """Per-class train/test counters behind a single lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Dict[int, Tuple[int, int]] = {}

    def decide_and_record(self, class_index: int, decide) -> bool:
        """
        Atomically decide and count one example.

        Args:
            class_index: Class of the example
            decide: Callable ``(train_count, test_count) -> bool`` returning
                True to route the example to the test split

        Returns:
            True if the example was routed to test
        """
        with self._lock:
            train, test = self._counts.get(class_index, (0, 0))
            is_test = bool(decide(train, test))
            if is_test:
                test += 1
            else:
                train += 1
            self._counts[class_index] = (train, test)
            return is_test

    def counts(self, class_index: int) -> Tuple[int, int]:
        with self._lock:
            return self._counts.get(class_index, (0, 0))


class RandomSplit:
    """Route each example to test with probability ``test_percent / 100``."""

    def __init__(self, test_percent: float, seed: int = 0):
        self.test_percent = test_percent
        self.seed = seed
        self.counters = ClassCounters()

    def draw(self, index: int) -> float:
        return float(sample_rng(self.seed ^ _SPLIT_STREAM, index).random())

    def _draw_is_test(self, index: int) -> bool:
        return self.test_percent > 0 and self.draw(index) < self.test_percent / 100.0

    def is_test(self, index: int, class_index: int) -> bool:
        drawn = self._draw_is_test(index)
        return self.counters.decide_and_record(class_index, lambda train, test: drawn)

    def role(self, index: int, class_index: int) -> str:
        return TEST if self.is_test(index, class_index) else TRAIN


class StratifiedSplit(RandomSplit):
    """
    Random split that forces a class's example to test while the class has
    no test example yet, or its test/train ratio is below half the target.
    """

    def is_test(self, index: int, class_index: int) -> bool:
        if self.test_percent <= 0:
            return self.counters.decide_and_record(class_index, lambda train, test: False)

        drawn = self._draw_is_test(index)
        target = self.test_percent / 100.0

        def decide(train: int, test: int) -> bool:
            if test == 0:
                return True
            if train > 0 and test / train < target / 2:
                return True
            return drawn

        return self.counters.decide_and_record(class_index, decide)
