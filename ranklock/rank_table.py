"""
rank_table.py - Ordered, append-only table of rank definitions

Ranks are index-addressed: a rank's id is its position in the table, lowest
tier first. The table only grows by appending a new highest rank; existing
ranks can be modified in place but never deleted or reordered.

Ordering invariant, for adjacent ranks i < j:
    rank[i].goal_amount  <= rank[j].goal_amount
    rank[i].min_duration <= rank[j].min_duration

Every add/modify runs the validation below before touching the table, so a
rejected call leaves the table unchanged.
"""

from __future__ import annotations
from datetime import timedelta
from typing import List, Optional, Tuple

from .core import (
    Rank, ErrorKind, OperationResult, MAX_RANKS,
    applied, rejected,
)


def validate_rank_values(min_duration: timedelta, goal_amount: int) -> Optional[str]:
    """Return a reason string if the raw values are unusable, else None."""
    if not isinstance(min_duration, timedelta):
        return f"min_duration must be a timedelta, got {type(min_duration).__name__}"
    if min_duration < timedelta(0):
        return f"min_duration must be non-negative, got {min_duration}"
    if isinstance(goal_amount, bool) or not isinstance(goal_amount, int):
        return f"goal_amount must be an integer, got {type(goal_amount).__name__}"
    if goal_amount < 0:
        return f"goal_amount must be non-negative, got {goal_amount}"
    return None


def validate_rank_order(
    candidate: Rank,
    lower: Optional[Rank],
    higher: Optional[Rank],
) -> Optional[str]:
    """
    Check a candidate rank against its neighbours.

    Either neighbour may be None (boundary ranks skip the missing side).

    Returns:
        None if the ordering invariant holds, otherwise a reason string.
    """
    if lower is not None:
        if candidate.goal_amount < lower.goal_amount:
            return f"goal {candidate.goal_amount} below rank {lower.id} goal {lower.goal_amount}"
        if candidate.min_duration < lower.min_duration:
            return f"duration {candidate.min_duration} below rank {lower.id} duration {lower.min_duration}"
    if higher is not None:
        if candidate.goal_amount > higher.goal_amount:
            return f"goal {candidate.goal_amount} above rank {higher.id} goal {higher.goal_amount}"
        if candidate.min_duration > higher.min_duration:
            return f"duration {candidate.min_duration} above rank {higher.id} duration {higher.min_duration}"
    return None


class RankTable:
    """
    Append-only rank table with ordering validation.

    Args:
        max_ranks: Capacity of the table (default: MAX_RANKS)
        legacy_neighbor_check: Reproduce the older right-neighbour
            test in modify_rank, which only compares against rank id+1 when
            id < len - 2. The rank just below the top is then never checked
            against the top rank. Default False checks every existing neighbour.
    """

    def __init__(self, max_ranks: int = MAX_RANKS, legacy_neighbor_check: bool = False):
        self._ranks: List[Rank] = []
        self.max_ranks = max_ranks
        self.legacy_neighbor_check = legacy_neighbor_check

    def __len__(self) -> int:
        return len(self._ranks)

    def __iter__(self):
        return iter(tuple(self._ranks))

    def get(self, rank_id: int) -> Optional[Rank]:
        """Return the rank with this id, or None if it does not exist."""
        if isinstance(rank_id, bool) or not isinstance(rank_id, int):
            return None
        if 0 <= rank_id < len(self._ranks):
            return self._ranks[rank_id]
        return None

    def highest(self) -> Optional[Rank]:
        return self._ranks[-1] if self._ranks else None

    def snapshot(self) -> Tuple[Rank, ...]:
        """Immutable copy of the table. Ranks are frozen, so the tuple is a consistent view."""
        return tuple(self._ranks)

    def add_rank(self, min_duration: timedelta, goal_amount: int) -> OperationResult:
        """
        Append a new highest rank with id = current length.

        Returns:
            APPLIED with the new Rank as payload, or REJECTED with
            INVALID_AMOUNT, CAPACITY_EXCEEDED or ORDERING_VIOLATION.
        """
        problem = validate_rank_values(min_duration, goal_amount)
        if problem:
            return rejected(ErrorKind.INVALID_AMOUNT, problem)
        if len(self._ranks) >= self.max_ranks:
            return rejected(
                ErrorKind.CAPACITY_EXCEEDED,
                f"rank table full ({self.max_ranks} ranks)",
            )

        rank = Rank(id=len(self._ranks), min_duration=min_duration, goal_amount=goal_amount)
        problem = validate_rank_order(rank, self.highest(), None)
        if problem:
            return rejected(ErrorKind.ORDERING_VIOLATION, problem)

        self._ranks.append(rank)
        return applied(rank)

    def modify_rank(self, rank_id: int, min_duration: timedelta, goal_amount: int) -> OperationResult:
        """
        Replace rank `rank_id` in place, keeping its id.

        Returns:
            APPLIED with the replacement Rank as payload, or REJECTED with
            NOT_FOUND, INVALID_AMOUNT or ORDERING_VIOLATION.
        """
        if not self._ranks:
            return rejected(ErrorKind.NOT_FOUND, "no ranks defined")
        if self.get(rank_id) is None:
            return rejected(ErrorKind.NOT_FOUND, f"rank {rank_id} does not exist")
        problem = validate_rank_values(min_duration, goal_amount)
        if problem:
            return rejected(ErrorKind.INVALID_AMOUNT, problem)

        candidate = Rank(id=rank_id, min_duration=min_duration, goal_amount=goal_amount)
        lower = self._ranks[rank_id - 1] if rank_id > 0 else None
        if self.legacy_neighbor_check:
            has_higher = rank_id < len(self._ranks) - 2
        else:
            has_higher = rank_id < len(self._ranks) - 1
        higher = self._ranks[rank_id + 1] if has_higher else None

        problem = validate_rank_order(candidate, lower, higher)
        if problem:
            return rejected(ErrorKind.ORDERING_VIOLATION, problem)

        self._ranks[rank_id] = candidate
        return applied(candidate)
