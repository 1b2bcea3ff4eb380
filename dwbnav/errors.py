"""Exceptions raised by the planner and its critics."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dwbnav.illegal_trajectory_tracker import IllegalTrajectoryTracker


class PlannerError(Exception):
    """The planner could not produce a command."""


class PlannerTFError(PlannerError):
    """A pose could not be transformed between frames."""


class IllegalTrajectoryError(PlannerError):
    """A critic found a trajectory illegal."""

    def __init__(self, critic_name: str, message: str) -> None:
        super().__init__(message)
        self.critic_name = critic_name
        self.message = message


class NoLegalTrajectoriesError(PlannerError):
    """Every trajectory in a planning cycle was illegal."""

    def __init__(self, tracker: IllegalTrajectoryTracker) -> None:
        super().__init__(tracker.message())
        self.tracker = tracker