"""Look up poses along a trajectory by time offset."""

from __future__ import annotations

from dwbnav.errors import PlannerError
from dwbnav.messages import Pose2D, Trajectory2D


def get_closest_pose(trajectory: Trajectory2D, time_offset: float) -> Pose2D:
    """Return the trajectory pose whose time offset is nearest ``time_offset``."""
    if not trajectory.poses:
        raise PlannerError("Cannot call getClosestPose on empty trajectory.")
    closest: Pose2D | None = None
    closest_diff = 0.0
    for pose, offset in zip(trajectory.poses, trajectory.time_offsets):
        diff = abs(offset - time_offset)
        if closest is None or diff < closest_diff:
            closest = pose
            closest_diff = diff
        if time_offset < offset:
            break
    return closest if closest is not None else trajectory.poses[-1]


def project_pose(trajectory: Trajectory2D, time_offset: float) -> Pose2D:
    """Interpolate the pose reached at ``time_offset``, clamped to the trajectory's ends."""
    poses = trajectory.poses
    if not poses:
        raise PlannerError("Cannot call projectPose on empty trajectory.")
    offsets = trajectory.time_offsets
    if time_offset <= offsets[0]:
        return poses[0]
    if time_offset >= offsets[len(poses) - 1]:
        return poses[-1]

    for (pose_a, t_a), (pose_b, t_b) in zip(zip(poses, offsets), zip(poses[1:], offsets[1:])):
        if t_a <= time_offset < t_b:
            ratio = (time_offset - t_a) / (t_b - t_a)
            inv = 1.0 - ratio
            return Pose2D(
                x=pose_a.x * inv + pose_b.x * ratio,
                y=pose_a.y * inv + pose_b.y * ratio,
                theta=pose_a.theta * inv + pose_b.theta * ratio,
            )
    return poses[-1]