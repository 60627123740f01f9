"""
Global word-frequency tally shared by all crawler workers.
"""

import threading
from collections import Counter
from typing import Dict, List, Mapping, NamedTuple, Optional


class RankedEntry(NamedTuple):
    """A word and how many times it was seen."""
    word: str
    count: int


class WordTally:
    """
    Thread-safe word counter.

    merge() is the only way to change the tally; counts are only ever added.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Counter = Counter()
        self.pages_merged = 0

    def merge(self, counts: Mapping[str, int]):
        """Add a page's local word counts into the global tally."""
        for word, count in counts.items():
            if count < 0:
                raise ValueError(f"negative count for {word!r}: {count}")

        with self._lock:
            for word, count in counts.items():
                self._counts[word] += count
            self.pages_merged += 1

    def snapshot(self) -> Dict[str, int]:
        """Return a copy of the current tally."""
        with self._lock:
            return dict(self._counts)

    def top_n(self, n: Optional[int] = None) -> List[RankedEntry]:
        """
        Return the n most frequent words, highest count first.

        Ties are ordered alphabetically so repeated calls on the same tally
        give the same result. Fewer than n entries are returned when the tally
        holds fewer distinct words; n=None ranks every word.
        """
        if n is not None and n < 0:
            raise ValueError("n must be non-negative")

        ranked = sorted(self.snapshot().items(), key=lambda item: (-item[1], item[0]))
        if n is not None:
            ranked = ranked[:n]
        return [RankedEntry(word, count) for word, count in ranked]

    def __len__(self) -> int:
        with self._lock:
            return len(self._counts)

    def __getitem__(self, word: str) -> int:
        with self._lock:
            return self._counts.get(word, 0)

    def total_words(self) -> int:
        with self._lock:
            return sum(self._counts.values())
