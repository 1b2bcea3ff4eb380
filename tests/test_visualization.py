import struct

import pytest

from dwbnav.messages import (
    LocalPlanEvaluation,
    Path2D,
    Pose2D,
    Trajectory2D,
    TrajectoryScore,
)
from dwbnav.visualization import (
    FLOAT32,
    CostCloud,
    DWBPublisher,
    PublisherSettings,
    cost_grid_cloud,
    trajectory_markers,
)


class RecordingSink:
    def __init__(self, subscribed=()):
        self.subscribed = set(subscribed)
        self.published = []

    def subscription_count(self, topic):
        return 1 if topic in self.subscribed else 0

    def publish(self, topic, message):
        self.published.append((topic, message))

    def topics(self):
        return [topic for topic, _ in self.published]


class GridStub:
    def __init__(self, size_x, size_y, resolution=0.5):
        self.size_x = size_x
        self.size_y = size_y
        self.resolution = resolution
        self.global_frame_id = "odom"

    def map_to_world(self, mx, my):
        return ((mx + 0.5) * self.resolution, (my + 0.5) * self.resolution)


class CriticStub:
    def __init__(self, scale, channels):
        self.scale = scale
        self.channels = channels

    def add_critic_visualization(self, cost_channels):
        cost_channels.extend(self.channels)


def _traj(*points):
    return Trajectory2D(poses=[Pose2D(x, y) for x, y in points])


def _evaluation():
    return LocalPlanEvaluation(
        frame_id="map",
        stamp=4.0,
        twists=[
            TrajectoryScore(traj=_traj((0.0, 0.0), (1.0, 2.0)), total=1.0),
            TrajectoryScore(traj=_traj((0.5, 0.5)), total=3.0),
            TrajectoryScore(traj=_traj((2.0, 1.0)), total=-1.0),
        ],
        best_index=0,
        worst_index=1,
    )


def _rows(cloud: CostCloud):
    fmt = "<" + "f" * len(cloud.fields)
    return list(struct.iter_unpack(fmt, cloud.data))


def test_markers_empty_evaluation():
    assert trajectory_markers(LocalPlanEvaluation(), 0.1) == []


def test_markers_colors_and_namespaces():
    markers = trajectory_markers(_evaluation(), 0.25)
    assert len(markers) == 3
    best, worst, illegal = markers
    assert best.color == (0.0, 1.0, 0.0, 1.0)
    assert worst.color == (1.0, 0.0, 0.0, 1.0)
    assert illegal.color == (0.0, 0.0, 0.0, 1.0)
    assert (best.ns, best.id) == ("ValidTrajectories", 0)
    assert (worst.ns, worst.id) == ("ValidTrajectories", 1)
    assert (illegal.ns, illegal.id) == ("InvalidTrajectories", 0)
    assert best.points == [(0.0, 0.0, 0.0), (1.0, 2.0, 0.0)]
    assert all(m.lifetime == 0.25 for m in markers)
    assert all(m.frame_id == "map" and m.stamp == 4.0 for m in markers)


def test_markers_equal_best_and_worst_are_green():
    results = LocalPlanEvaluation(
        twists=[TrajectoryScore(total=2.0), TrajectoryScore(total=2.0)],
        best_index=0,
        worst_index=1,
    )
    markers = trajectory_markers(results, 0.1)
    assert [m.color for m in markers] == [(0.0, 1.0, 0.0, 1.0)] * 2
    assert [m.id for m in markers] == [0, 1]


def test_cost_grid_cloud_layout():
    grid = GridStub(3, 2)
    critic = CriticStub(2.0, [("obstacle", [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])])
    cloud = cost_grid_cloud(grid, [critic], "odom")
    assert [f.name for f in cloud.fields] == ["x", "y", "z", "obstacle", "total_cost"]
    assert [f.offset for f in cloud.fields] == [0, 4, 8, 12, 16]
    assert all(f.datatype == FLOAT32 and f.count == 1 for f in cloud.fields)
    assert cloud.width == 6
    assert cloud.height == 1
    assert cloud.point_step == 20
    assert cloud.row_step == cloud.point_step * cloud.width
    assert len(cloud.data) == cloud.row_step * cloud.height
    assert cloud.frame_id == "odom"
    assert cloud.is_dense and not cloud.is_bigendian


def test_cost_grid_cloud_values():
    grid = GridStub(3, 2)
    values = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
    critic = CriticStub(2.0, [("obstacle", values)])
    rows = _rows(cost_grid_cloud(grid, [critic], "odom"))
    cells = [(cx, cy) for cy in range(2) for cx in range(3)]
    for (cx, cy), row, value in zip(cells, rows, values):
        wx, wy = grid.map_to_world(cx, cy)
        assert row[0] == pytest.approx(wx)
        assert row[1] == pytest.approx(wy)
        assert row[2] == 0.0
        assert row[3] == pytest.approx(value)
        assert row[4] == pytest.approx(value * critic.scale)


def test_cost_grid_cloud_total_uses_first_channel_and_skips_silent_critics():
    grid = GridStub(2, 1)
    first = CriticStub(1.0, [("a", [1.0, 2.0]), ("b", [10.0, 20.0])])
    silent = CriticStub(5.0, [])
    second = CriticStub(3.0, [("c", [4.0, 8.0])])
    cloud = cost_grid_cloud(grid, [first, silent, second], "odom")
    assert [f.name for f in cloud.fields][3:] == ["a", "b", "c", "total_cost"]
    totals = [row[-1] for row in _rows(cloud)]
    assert totals == pytest.approx([1.0 * 1.0 + 4.0 * 3.0, 2.0 * 1.0 + 8.0 * 3.0])


def test_cost_grid_cloud_without_critics_has_zero_total():
    cloud = cost_grid_cloud(GridStub(2, 2), [], "odom")
    assert [f.name for f in cloud.fields] == ["x", "y", "z", "total_cost"]
    assert [row[3] for row in _rows(cloud)] == [0.0] * 4


def test_publish_evaluation_none_publishes_nothing():
    sink = RecordingSink({"evaluation", "marker"})
    DWBPublisher(PublisherSettings(), sink).publish_evaluation(None)
    assert sink.published == []


def test_publish_evaluation_sends_copy_and_markers():
    sink = RecordingSink({"evaluation", "marker"})
    results = _evaluation()
    DWBPublisher(PublisherSettings(), sink).publish_evaluation(results)
    assert sink.topics() == ["evaluation", "marker"]
    sent = sink.published[0][1]
    assert sent == results
    assert sent is not results
    assert len(sink.published[1][1]) == 3


def test_publish_evaluation_respects_flags_and_subscribers():
    sink = RecordingSink({"evaluation", "marker"})
    settings = PublisherSettings(publish_evaluation=False)
    DWBPublisher(settings, sink).publish_evaluation(_evaluation())
    assert sink.topics() == ["marker"]

    quiet = RecordingSink()
    DWBPublisher(PublisherSettings(), quiet).publish_evaluation(_evaluation())
    assert quiet.published == []

    no_traj = RecordingSink({"marker"})
    DWBPublisher(PublisherSettings(publish_trajectories=False), no_traj).publish_evaluation(
        _evaluation()
    )
    assert no_traj.published == []


def test_publish_evaluation_empty_twists_skips_markers():
    sink = RecordingSink({"marker"})
    DWBPublisher(PublisherSettings(), sink).publish_evaluation(LocalPlanEvaluation())
    assert sink.published == []


def test_publish_local_plan_routing():
    sink = RecordingSink({"local_plan", "my_local_plan"})
    publisher = DWBPublisher(PublisherSettings(), sink)
    traj = _traj((1.0, 1.0), (2.0, 3.0))
    publisher.publish_local_plan("odom", traj, False)
    publisher.publish_local_plan("odom", traj, True)
    assert sink.topics() == ["local_plan", "my_local_plan"]
    path = sink.published[0][1]
    assert path.frame_id == "odom"
    assert path.poses == traj.poses


def test_publish_local_plan_disabled():
    sink = RecordingSink({"local_plan", "my_local_plan"})
    settings = PublisherSettings(publish_local_plan=False, my_publish_local_plan=False)
    DWBPublisher(settings, sink).publish_local_plan("odom", _traj((0.0, 0.0)), False)
    assert sink.published == []


def test_publish_local_plan_without_subscriber():
    sink = RecordingSink({"my_local_plan"})
    DWBPublisher(PublisherSettings(), sink).publish_local_plan("odom", _traj((0.0, 0.0)), False)
    assert sink.published == []


def test_publish_global_and_transformed_plans():
    sink = RecordingSink({"received_global_plan", "transformed_global_plan"})
    publisher = DWBPublisher(PublisherSettings(), sink)
    plan = Path2D(frame_id="map", poses=[Pose2D(1.0, 2.0, 0.5)])
    publisher.publish_global_plan(plan)
    publisher.publish_transformed_plan(plan)
    assert sink.topics() == ["received_global_plan", "transformed_global_plan"]
    assert all(msg == plan for _, msg in sink.published)


def test_publish_global_plan_flag_off():
    sink = RecordingSink({"received_global_plan"})
    settings = PublisherSettings(publish_global_plan=False)
    DWBPublisher(settings, sink).publish_global_plan(Path2D(poses=[Pose2D()]))
    assert sink.published == []


def test_publish_cost_grid_disabled_by_default():
    sink = RecordingSink({"cost_cloud"})
    DWBPublisher(PublisherSettings(), sink).publish_cost_grid(GridStub(2, 2), [])
    assert sink.published == []


def test_publish_cost_grid_enabled():
    sink = RecordingSink({"cost_cloud"})
    settings = PublisherSettings(publish_cost_grid_pc=True)
    grid = GridStub(2, 2)
    DWBPublisher(settings, sink).publish_cost_grid(grid, [CriticStub(1.0, [("c", [1.0] * 4)])])
    assert sink.topics() == ["cost_cloud"]
    cloud = sink.published[0][1]
    assert cloud.frame_id == grid.global_frame_id
    assert cloud.width == 4