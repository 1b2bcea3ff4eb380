"""Plain data records exchanged between the planner, critics and publishers."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Pose2D:
    """A planar pose: position and heading in radians."""

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0


@dataclass
class Twist2D:
    """A planar velocity: linear x, y and angular theta."""

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0


@dataclass
class Path2D:
    """A sequence of poses in a named frame."""

    frame_id: str = ""
    stamp: float = 0.0
    poses: list[Pose2D] = field(default_factory=list)


@dataclass
class Trajectory2D:
    """Poses reached by following ``velocity``, with each pose's time offset in seconds."""

    velocity: Twist2D = field(default_factory=Twist2D)
    poses: list[Pose2D] = field(default_factory=list)
    time_offsets: list[float] = field(default_factory=list)


@dataclass
class CriticScore:
    """One critic's verdict on a trajectory."""

    name: str = ""
    raw_score: float = 0.0
    scale: float = 0.0


@dataclass
class TrajectoryScore:
    """A trajectory with the scores of every critic and their weighted total."""

    traj: Trajectory2D = field(default_factory=Trajectory2D)
    scores: list[CriticScore] = field(default_factory=list)
    total: float = 0.0


@dataclass
class LocalPlanEvaluation:
    """All trajectories scored in one planning cycle, with the best and worst marked."""

    frame_id: str = ""
    stamp: float = 0.0
    twists: list[TrajectoryScore] = field(default_factory=list)
    best_index: int = 0
    worst_index: int = 0