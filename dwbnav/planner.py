"""The local planner: score candidate trajectories and pick a velocity command."""

from __future__ import annotations

import copy
import logging
import math
import time
from collections.abc import Callable, Collection, Iterable, Sequence
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from typing import Any, Protocol

from dwbnav.errors import (
    IllegalTrajectoryError,
    NoLegalTrajectoriesError,
    PlannerError,
    PlannerTFError,
)
from dwbnav.illegal_trajectory_tracker import IllegalTrajectoryTracker
from dwbnav.messages import (
    CriticScore,
    LocalPlanEvaluation,
    Path2D,
    Pose2D,
    Trajectory2D,
    TrajectoryScore,
    Twist2D,
)
from dwbnav.visualization import DWBPublisher, PublisherSettings

logger = logging.getLogger(__name__)

DEFAULT_CRITIC_NAMESPACE = "dwb_critics"
SKIPPED_CRITIC = "Min_Distance"

Transform = Callable[[Pose2D, str, str, float], "Pose2D | None"]
"""Transform ``pose`` from a source frame to a target frame; None when it cannot."""


class TrajectoryGenerator(Protocol):
    """Produces candidate velocities and the trajectories they lead to."""

    def reset(self) -> None: ...

    def start_new_iteration(self, velocity: Twist2D) -> None: ...

    def has_more_twists(self) -> bool: ...

    def next_twist(self) -> Twist2D: ...

    def generate_trajectory(
        self, pose: Pose2D, velocity: Twist2D, twist: Twist2D
    ) -> Trajectory2D: ...


class TrajectoryCritic(Protocol):
    """Scores trajectories; lower is better. Raises IllegalTrajectoryError to reject one."""

    name: str
    scale: float

    def reset(self) -> None: ...

    def prepare(
        self, pose: Pose2D, velocity: Twist2D, goal: Pose2D, global_plan: Path2D
    ) -> bool: ...

    def score_trajectory(self, traj: Trajectory2D) -> float: ...

    def debrief(self, cmd_vel: Twist2D) -> None: ...

    def add_critic_visualization(self, cost_channels: list[tuple[str, list[float]]]) -> None: ...


class LocalCostmap(Protocol):
    """The local costmap the planner works in."""

    size_x: int
    size_y: int
    resolution: float
    global_frame_id: str

    def map_to_world(self, mx: int, my: int) -> tuple[float, float]: ...


@dataclass
class PlannerSettings:
    """Tuning of plan pruning and trajectory evaluation."""

    prune_plan: bool = True
    prune_distance: float = 2.0
    forward_prune_distance: float = 2.0
    debug_trajectory_details: bool = False
    transform_tolerance: float = 0.1
    shorten_transformed_plan: bool = True
    short_circuit_trajectory_evaluation: bool = True


def resolve_critic_class_name(
    base_name: str, namespaces: Sequence[str], available: Collection[str]
) -> str:
    """Complete a critic's class name with the "Critic" suffix and a known namespace.

    An empty ``namespaces`` means the default critic namespace.
    """
    if "Critic" not in base_name:
        base_name = base_name + "Critic"
    if "::" not in base_name:
        for namespace in namespaces or (DEFAULT_CRITIC_NAMESPACE,):
            full_name = f"{namespace}::{base_name}"
            if full_name in available:
                return full_name
    return base_name


def _same_frame_only(pose: Pose2D, source: str, target: str, tolerance: float) -> Pose2D | None:
    return copy.copy(pose) if source == target else None


class _NullSink:
    def subscription_count(self, topic: str) -> int:
        return 0

    def publish(self, topic: str, message: Any) -> None:
        pass


def _distance(a: Pose2D, b: Pose2D) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def _first_after_integrated_distance(poses: Sequence[Pose2D], distance: float) -> int:
    """Index of the first pose whose path length from the start exceeds ``distance``."""
    travelled = 0.0
    for i, (a, b) in enumerate(zip(poses, poses[1:]), start=1):
        travelled += _distance(a, b)
        if travelled > distance:
            return i
    return len(poses)


class DWBLocalPlanner:
    """Follows a global plan by scoring generated trajectories with a set of critics.

    Robot poses handed to the planner are in the costmap's global frame.
    """

    def __init__(
        self,
        generator: TrajectoryGenerator,
        critics: Iterable[TrajectoryCritic],
        costmap: LocalCostmap,
        settings: PlannerSettings | None = None,
        transform: Transform | None = None,
        publisher: DWBPublisher | None = None,
    ) -> None:
        self.generator = generator
        self.critics: list[TrajectoryCritic] = list(critics)
        self.costmap = costmap
        self.settings = settings if settings is not None else PlannerSettings()
        self._transform = transform if transform is not None else _same_frame_only
        self.publisher = (
            publisher if publisher is not None else DWBPublisher(PublisherSettings(), _NullSink())
        )
        self.global_plan = Path2D()

    def _locked(self) -> AbstractContextManager[Any]:
        lock = getattr(self.costmap, "lock", None)
        return lock if lock is not None else nullcontext()

    def _to_frame(self, pose: Pose2D, source: str, target: str) -> Pose2D | None:
        return self._transform(pose, source, target, self.settings.transform_tolerance)

    def set_plan(self, path: Path2D) -> None:
        """Accept a new global plan and reset the critics and generator."""
        for critic in self.critics:
            critic.reset()
        self.generator.reset()
        self.publisher.publish_global_plan(path)
        self.global_plan = copy.deepcopy(path)

    def compute_velocity_commands(
        self,
        pose: Pose2D,
        velocity: Twist2D,
        results: LocalPlanEvaluation | None = None,
    ) -> Twist2D:
        """Return the velocity of the best trajectory from ``pose`` at ``velocity``.

        When ``results`` is given it is filled with every scored trajectory and
        published, also when planning fails.
        """
        try:
            cmd_vel = self._compute(pose, velocity, results)
        except PlannerError:
            self.publisher.publish_evaluation(results)
            raise
        self.publisher.publish_evaluation(results)
        return cmd_vel

    def _compute(
        self, pose: Pose2D, velocity: Twist2D, results: LocalPlanEvaluation | None
    ) -> Twist2D:
        frame_id = self.costmap.global_frame_id
        if results is not None:
            results.frame_id = frame_id
            results.stamp = time.time()

        transformed_plan, goal_pose = self.prepare_global_plan(pose)

        error: NoLegalTrajectoriesError | None = None
        with self._locked():
            for critic in self.critics:
                if not critic.prepare(pose, velocity, goal_pose, transformed_plan):
                    logger.warning("A scoring function failed to prepare")
            try:
                best = self.core_scoring_algorithm(pose, velocity, results, False)
                best_all = self.core_scoring_algorithm(pose, velocity, results, True)
            except NoLegalTrajectoriesError as exc:
                error = exc
                empty_cmd = Twist2D()
                for critic in self.critics:
                    critic.debrief(empty_cmd)
            else:
                cmd_vel = copy.copy(best.traj.velocity)
                for critic in self.critics:
                    critic.debrief(cmd_vel)

        if error is not None:
            self.publisher.publish_local_plan(frame_id, Trajectory2D(), False)
            self.publisher.publish_cost_grid(self.costmap, self.critics)
            raise error

        self.publisher.publish_local_plan(frame_id, best.traj, False)
        self.publisher.publish_local_plan(frame_id, best_all.traj, True)
        return cmd_vel

    def prepare_global_plan(
        self, pose: Pose2D, publish_plan: bool = True
    ) -> tuple[Path2D, Pose2D]:
        """Return the nearby part of the plan and the goal, both in the costmap frame."""
        transformed_plan = self.transform_global_plan(pose)
        if publish_plan:
            self.publisher.publish_transformed_plan(transformed_plan)

        goal = self.global_plan.poses[-1]
        transformed_goal = self._to_frame(
            goal, self.global_plan.frame_id, self.costmap.global_frame_id
        )
        goal_pose = transformed_goal if transformed_goal is not None else copy.copy(goal)
        return transformed_plan, goal_pose

    def core_scoring_algorithm(
        self,
        pose: Pose2D,
        velocity: Twist2D,
        results: LocalPlanEvaluation | None,
        use_all_critics: bool,
    ) -> TrajectoryScore:
        """Score every generated trajectory and return the one with the lowest total.

        Raises NoLegalTrajectoriesError when every trajectory was rejected.
        """
        best = TrajectoryScore(total=-1.0)
        worst = TrajectoryScore(total=-1.0)
        tracker = IllegalTrajectoryTracker()

        self.generator.start_new_iteration(velocity)
        while self.generator.has_more_twists():
            twist = self.generator.next_twist()
            traj = self.generator.generate_trajectory(pose, velocity, twist)
            try:
                score = self.score_trajectory(traj, best.total, use_all_critics)
            except IllegalTrajectoryError as exc:
                if results is not None:
                    results.twists.append(
                        TrajectoryScore(
                            traj=traj,
                            scores=[CriticScore(name=exc.critic_name, raw_score=-1.0)],
                            total=-1.0,
                        )
                    )
                tracker.add_illegal_trajectory(exc)
                continue

            tracker.add_legal_trajectory()
            if results is not None:
                results.twists.append(score)
            if best.total < 0 or score.total < best.total:
                best = score
                if results is not None:
                    results.best_index = len(results.twists) - 1
            if worst.total < 0 or score.total > worst.total:
                worst = score
                if results is not None:
                    results.worst_index = len(results.twists) - 1

        if best.total < 0:
            if self.settings.debug_trajectory_details:
                logger.error("%s", tracker.message())
                for (critic_name, reason), share in tracker.percentages().items():
                    logger.error("%.2f: %10s/%s", share, critic_name, reason)
            raise NoLegalTrajectoriesError(tracker)
        return best

    def score_trajectory(
        self, traj: Trajectory2D, best_score: float, use_all_critics: bool = True
    ) -> TrajectoryScore:
        """Weighted sum of the critics' scores for ``traj``.

        Without ``use_all_critics`` the minimum-distance critic is left out.
        Scoring stops early once the total exceeds a positive ``best_score``
        if short-circuiting is enabled.
        """
        score = TrajectoryScore(traj=traj)
        for critic in self.critics:
            critic_score = CriticScore(name=critic.name, scale=critic.scale)
            if not use_all_critics and critic_score.name == SKIPPED_CRITIC:
                continue
            if critic_score.scale == 0.0:
                score.scores.append(critic_score)
                continue
            raw = critic.score_trajectory(traj)
            critic_score.raw_score = raw
            score.scores.append(critic_score)
            score.total += raw * critic_score.scale
            if (
                self.settings.short_circuit_trajectory_evaluation
                and best_score > 0
                and score.total > best_score
            ):
                # Scores only add up, so this trajectory cannot beat the best any more.
                break
        return score

    def transform_global_plan(self, pose: Pose2D) -> Path2D:
        """Cut the plan to the part near the robot and express it in the costmap frame.

        With pruning enabled, plan poses the robot has passed are dropped.
        """
        if not self.global_plan.poses:
            raise PlannerError("Received plan with zero length")

        robot_pose = self._to_frame(pose, self.costmap.global_frame_id, self.global_plan.frame_id)
        if robot_pose is None:
            raise PlannerTFError("Unable to transform robot pose into global plan's frame")

        settings = self.settings
        dist_threshold = (
            max(self.costmap.size_x, self.costmap.size_y) * self.costmap.resolution / 2.0
        )
        start_threshold = (
            min(dist_threshold, settings.prune_distance) if settings.prune_plan else dist_threshold
        )
        end_threshold = (
            min(dist_threshold, settings.forward_prune_distance)
            if settings.shorten_transformed_plan
            else dist_threshold
        )

        poses = self.global_plan.poses
        prune_point = _first_after_integrated_distance(poses, settings.prune_distance)
        begin = next(
            (
                i
                for i in range(prune_point)
                if _distance(robot_pose, poses[i]) < start_threshold
            ),
            prune_point,
        )
        end = next(
            (
                j
                for j in range(begin, len(poses))
                if _distance(poses[j], robot_pose) > end_threshold
            ),
            len(poses),
        )

        target_frame = self.costmap.global_frame_id
        transformed_poses = []
        for plan_pose in poses[begin:end]:
            local = self._to_frame(plan_pose, self.global_plan.frame_id, target_frame)
            transformed_poses.append(local if local is not None else Pose2D())
        transformed_plan = Path2D(frame_id=target_frame, stamp=time.time(), poses=transformed_poses)

        if settings.prune_plan:
            del self.global_plan.poses[:begin]
            self.publisher.publish_global_plan(self.global_plan)

        if not transformed_plan.poses:
            raise PlannerError("Resulting plan has 0 poses in it.")
        return transformed_plan