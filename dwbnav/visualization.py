"""Debug output of the local planner: plans, scored trajectories and cost clouds."""

from __future__ import annotations

import copy
import struct
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from dwbnav.messages import LocalPlanEvaluation, Path2D, Trajectory2D

EVALUATION_TOPIC = "evaluation"
GLOBAL_PLAN_TOPIC = "received_global_plan"
TRANSFORMED_PLAN_TOPIC = "transformed_global_plan"
LOCAL_PLAN_TOPIC = "local_plan"
MY_LOCAL_PLAN_TOPIC = "my_local_plan"
MARKER_TOPIC = "marker"
COST_CLOUD_TOPIC = "cost_cloud"

VALID_NAMESPACE = "ValidTrajectories"
INVALID_NAMESPACE = "InvalidTrajectories"

FLOAT32 = 7
"""Datatype code of a 32-bit float point field."""

CostChannels = list[tuple[str, list[float]]]


class MessageSink(Protocol):
    """Where published messages go."""

    def subscription_count(self, topic: str) -> int: ...

    def publish(self, topic: str, message: Any) -> None: ...


class GridMap(Protocol):
    """A grid of cells that can be placed in world coordinates."""

    size_x: int
    size_y: int

    def map_to_world(self, mx: int, my: int) -> tuple[float, float]: ...


class FramedGridMap(GridMap, Protocol):
    """A grid map that knows the frame it lives in."""

    global_frame_id: str


class VisualCritic(Protocol):
    """A critic that may add per-cell cost channels for display."""

    scale: float

    def add_critic_visualization(self, cost_channels: CostChannels) -> None: ...


@dataclass
class Marker:
    """A line strip drawing one scored trajectory."""

    ns: str = ""
    id: int = 0
    frame_id: str = ""
    stamp: float = 0.0
    color: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)
    points: list[tuple[float, float, float]] = field(default_factory=list)
    lifetime: float = 0.0
    scale_x: float = 0.002
    type: str = "LINE_STRIP"


@dataclass
class PointField:
    """One named float column of a point cloud."""

    name: str
    offset: int
    datatype: int = FLOAT32
    count: int = 1


@dataclass
class CostCloud:
    """A packed little-endian point cloud with one point per grid cell."""

    frame_id: str
    stamp: float
    fields: list[PointField]
    width: int
    height: int
    point_step: int
    row_step: int
    data: bytes
    is_dense: bool = True
    is_bigendian: bool = False


@dataclass
class PublisherSettings:
    """Which outputs the publisher emits."""

    publish_evaluation: bool = True
    publish_global_plan: bool = True
    publish_transformed_plan: bool = True
    publish_local_plan: bool = True
    my_publish_local_plan: bool = True
    publish_trajectories: bool = True
    publish_cost_grid_pc: bool = False
    marker_lifetime: float = 0.1


def trajectory_markers(results: LocalPlanEvaluation, lifetime: float) -> list[Marker]:
    """One marker per scored trajectory, coloured green (best) to red (worst).

    Illegal trajectories (negative total) are drawn black in their own namespace.
    """
    if not results.twists:
        return []
    best_cost = results.twists[results.best_index].total
    worst_cost = results.twists[results.worst_index].total
    denominator = worst_cost - best_cost
    if abs(denominator) < 1e-9:
        denominator = 1.0

    markers: list[Marker] = []
    valid_id = 0
    invalid_id = 0
    for twist in results.twists:
        if twist.total >= 0:
            level = (twist.total - best_cost) / denominator
            color = (level, 1.0 - level, 0.0, 1.0)
            ns, marker_id = VALID_NAMESPACE, valid_id
            valid_id += 1
        else:
            color = (0.0, 0.0, 0.0, 1.0)
            ns, marker_id = INVALID_NAMESPACE, invalid_id
            invalid_id += 1
        markers.append(
            Marker(
                ns=ns,
                id=marker_id,
                frame_id=results.frame_id,
                stamp=results.stamp,
                color=color,
                points=[(p.x, p.y, 0.0) for p in twist.traj.poses],
                lifetime=lifetime,
            )
        )
    return markers


def cost_grid_cloud(
    costmap: GridMap, critics: Iterable[VisualCritic], frame_id: str
) -> CostCloud:
    """Build a cloud with x, y, z, each critic's channels and their scaled total."""
    size_x, size_y = costmap.size_x, costmap.size_y
    cell_count = size_x * size_y

    channels: CostChannels = []
    total_cost = [0.0] * cell_count
    for critic in critics:
        first_new = len(channels)
        critic.add_critic_visualization(channels)
        if len(channels) == first_new:
            continue
        scale = critic.scale
        values = channels[first_new][1]
        total_cost = [t + v * scale for t, v in zip(total_cost, values)]
    channels.append(("total_cost", total_cost))

    names = ["x", "y", "z"] + [name for name, _ in channels]
    fields = [PointField(name=name, offset=4 * i) for i, name in enumerate(names)]
    point_step = 4 * len(fields)

    packer = struct.Struct("<" + "f" * len(fields))
    rows = bytearray()
    cells = ((cx, cy) for cy in range(size_y) for cx in range(size_x))
    for j, (cx, cy) in enumerate(cells):
        wx, wy = costmap.map_to_world(cx, cy)
        rows += packer.pack(wx, wy, 0.0, *(values[j] for _, values in channels))

    return CostCloud(
        frame_id=frame_id,
        stamp=time.time(),
        fields=fields,
        width=cell_count,
        height=1,
        point_step=point_step,
        row_step=point_step * cell_count,
        data=bytes(rows),
    )


class DWBPublisher:
    """Sends planner debug output to a sink, honouring settings and subscriber counts."""

    def __init__(self, settings: PublisherSettings | None, sink: MessageSink) -> None:
        self.settings = settings if settings is not None else PublisherSettings()
        self._sink = sink

    def _has_subscribers(self, topic: str) -> bool:
        return self._sink.subscription_count(topic) > 0

    def publish_evaluation(self, results: LocalPlanEvaluation | None) -> None:
        """Publish an evaluation and the trajectory markers drawn from it."""
        if results is None:
            return
        if self.settings.publish_evaluation and self._has_subscribers(EVALUATION_TOPIC):
            self._sink.publish(EVALUATION_TOPIC, copy.deepcopy(results))
        self._publish_trajectories(results)

    def _publish_trajectories(self, results: LocalPlanEvaluation) -> None:
        if not self._has_subscribers(MARKER_TOPIC):
            return
        if not self.settings.publish_trajectories:
            return
        markers = trajectory_markers(results, self.settings.marker_lifetime)
        if markers:
            self._sink.publish(MARKER_TOPIC, markers)

    def publish_local_plan(self, frame_id: str, traj: Trajectory2D, my_plan: bool) -> None:
        """Publish a trajectory's poses as the local plan, or the alternative local plan."""
        if not self.settings.publish_local_plan and not self.settings.my_publish_local_plan:
            return
        path = Path2D(frame_id=frame_id, stamp=time.time(), poses=copy.deepcopy(traj.poses))
        if not my_plan and self._has_subscribers(LOCAL_PLAN_TOPIC):
            self._sink.publish(LOCAL_PLAN_TOPIC, path)
        elif my_plan and self._has_subscribers(MY_LOCAL_PLAN_TOPIC):
            self._sink.publish(MY_LOCAL_PLAN_TOPIC, path)

    def publish_global_plan(self, plan: Path2D) -> None:
        """Publish the global plan as received."""
        self._publish_generic_plan(plan, GLOBAL_PLAN_TOPIC, self.settings.publish_global_plan)

    def publish_transformed_plan(self, plan: Path2D) -> None:
        """Publish the global plan after transforming it into the local frame."""
        self._publish_generic_plan(
            plan, TRANSFORMED_PLAN_TOPIC, self.settings.publish_transformed_plan
        )

    def _publish_generic_plan(self, plan: Path2D, topic: str, enabled: bool) -> None:
        if not self._has_subscribers(topic):
            return
        if not enabled:
            return
        self._sink.publish(topic, copy.deepcopy(plan))

    def publish_cost_grid(
        self, costmap: FramedGridMap, critics: Sequence[VisualCritic]
    ) -> None:
        """Publish the cost cloud of the given critics over the costmap."""
        if not self._has_subscribers(COST_CLOUD_TOPIC):
            return
        if not self.settings.publish_cost_grid_pc:
            return
        self._sink.publish(
            COST_CLOUD_TOPIC, cost_grid_cloud(costmap, critics, costmap.global_frame_id)
        )