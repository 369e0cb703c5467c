from __future__ import annotations

"""
irtranscript.ids
----------------
Cluster-ID bookkeeping for the nested-intron stage.

Numbering contract:
- ids are unique within one ClusterCounter, handed out in the order Parents
  are met (genes sorted, rows in table order inside a gene);
- the counter starts at 1 and is advanced before every hand-out, so the first
  id is 2;
- orphan rows carry ORPHAN_CLUSTER instead of a number.

nested_intron() builds a fresh counter per call unless one is passed in, so
the same input always gets the same ids.
"""

from typing import List

ORPHAN_CLUSTER = "none"

CLUSTER_COUNTER_START = 1


class ClusterCounter:
    """Run-wide, strictly increasing source of intron-cluster ids."""

    def __init__(self, start: int = CLUSTER_COUNTER_START) -> None:
        self._start = int(start)
        self._value = self._start

    @property
    def value(self) -> int:
        return self._value

    @property
    def n_issued(self) -> int:
        return self._value - self._start

    @property
    def issued(self) -> List[int]:
        # ids are contiguous, so the range is enough
        return list(range(self._start + 1, self._value + 1))

    def advance(self) -> int:
        self._value += 1
        return self._value

    def next_id(self) -> str:
        """Advance and return the new id in its table (string) form."""
        return format_cluster_id(self.advance())

    def __repr__(self) -> str:
        return f"ClusterCounter(value={self._value}, issued={self.n_issued})"


def format_cluster_id(value: int) -> str:
    return str(int(value))
