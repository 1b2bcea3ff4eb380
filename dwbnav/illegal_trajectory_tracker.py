"""Tallies of legal and illegal trajectories seen during one planning cycle."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dwbnav.errors import IllegalTrajectoryError


class IllegalTrajectoryTracker:
    """Counts legal trajectories and illegal ones by (critic, reason)."""

    def __init__(self) -> None:
        self._counts: Counter[tuple[str, str]] = Counter()
        self._legal_count = 0
        self._illegal_count = 0

    @property
    def legal_count(self) -> int:
        return self._legal_count

    @property
    def illegal_count(self) -> int:
        return self._illegal_count

    def add_illegal_trajectory(self, error: IllegalTrajectoryError) -> None:
        """Record a trajectory rejected with ``error``."""
        self._counts[(error.critic_name, str(error))] += 1
        self._illegal_count += 1

    def add_legal_trajectory(self) -> None:
        """Record a trajectory that every critic accepted."""
        self._legal_count += 1

    def percentages(self) -> dict[tuple[str, str], float]:
        """Fraction of all trajectories rejected for each (critic, reason), in key order."""
        total = self._legal_count + self._illegal_count
        return {key: self._counts[key] / total for key in sorted(self._counts)}

    def message(self) -> str:
        """A one-line summary of how many trajectories were valid."""
        if self._legal_count == 0:
            return f"No valid trajectories out of {self._illegal_count}! "
        total = self._legal_count + self._illegal_count
        percent = 100 * self._legal_count / total
        return f"{self._legal_count} valid trajectories found ({percent:g}% of {total}). "