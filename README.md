# dwbnav

The core of a dynamic window local planner for mobile robots. It is plain
Python and has no third-party dependencies.

## What is inside

- `dwbnav.map_based_queue.MapBasedQueue` is a priority queue in which the lowest
  priority comes out first. Items are grouped into bins by priority, and items
  with the same priority come out last in, first out. It offers `enqueue`,
  `front`, `pop`, `is_empty`, `reset` and `len()`. Calling `front()` on an empty
  queue raises `IndexError`.
- `dwbnav.costmap_queue.CostmapQueue` expands outward over a grid from the seed
  cells passed to `enqueue_cell(x, y)`. The grid can be a `GridSize` or any
  object with `size_x`, `size_y` and `index(x, y)`. `get_next_cell()` and
  iteration yield each reachable cell once, as a `CellData`, in order of its
  distance to the nearest seed. The distance is Euclidean unless
  `manhattan=True` is given. `LimitedCostmapQueue` queues only cells whose
  distance is within a given number of cells.
- `dwbnav.messages` holds plain dataclasses: `Pose2D`, `Twist2D`, `Path2D`,
  `Trajectory2D`, `CriticScore`, `TrajectoryScore` and `LocalPlanEvaluation`.
- `dwbnav.errors` holds the exceptions: `PlannerError`, and its subclasses
  `PlannerTFError`, `IllegalTrajectoryError` (which carries `critic_name`) and
  `NoLegalTrajectoriesError` (which carries the `tracker`).
- `dwbnav.illegal_trajectory_tracker.IllegalTrajectoryTracker` counts legal and
  illegal trajectories. `percentages()` gives the share of rejections for each
  (critic, reason) pair, and `message()` gives a one-line summary.
- `dwbnav.trajectory_utils` provides two functions:
  - `get_closest_pose` returns the pose whose time offset is nearest a given time.
  - `project_pose` interpolates the pose at a given time, clamped to the ends of
    the trajectory.

  Both raise `PlannerError` on an empty trajectory.
- `dwbnav.visualization` holds the display helpers:
  - `trajectory_markers` turns an evaluation into line-strip `Marker`s, coloured
    from green for the best trajectory to red for the worst, and black for
    illegal ones.
  - `cost_grid_cloud` packs the critics' cost channels into a little-endian
    `CostCloud`.
  - `DWBPublisher` sends plans, evaluations, markers and cost clouds to a sink
    you supply. The sink must have `subscription_count(topic)` and
    `publish(topic, message)`. `DWBPublisher` publishes only what
    `PublisherSettings` enables and only to topics that have subscribers.
- `dwbnav.planner.DWBLocalPlanner` does the planning:
  1. It prunes the global plan to the part near the robot.
  2. It scores every trajectory from a trajectory generator with a list of
     critics. A lower total is better, and a critic rejects a trajectory by
     raising `IllegalTrajectoryError`.
  3. It returns the velocity of the best trajectory.

  Scoring runs twice. The first pass leaves out a critic named `Min_Distance`,
  and the command comes from that pass. The second pass uses all critics. Its
  best trajectory is published on the `my_local_plan` topic, beside
  `local_plan`.

  `PlannerSettings` controls pruning and short-circuit scoring.
  `resolve_critic_class_name` completes a critic class name with the `Critic`
  suffix and a namespace from a set of available names.

## Examples

Expanding over a grid:

```python
from dwbnav.costmap_queue import CostmapQueue, GridSize

queue = CostmapQueue(GridSize(5, 5))
queue.enqueue_cell(0, 0)
for cell in queue:
    print(cell.x, cell.y, cell.distance)
```

Using the priority queue:

```python
from dwbnav.map_based_queue import MapBasedQueue

q = MapBasedQueue()
q.enqueue(2.0, "b")
q.enqueue(1.0, "a")
while not q.is_empty():
    print(q.front())
    q.pop()
```

A local planner with a toy generator and a single critic:

```python
from dataclasses import dataclass

from dwbnav.messages import Path2D, Pose2D, Trajectory2D, Twist2D
from dwbnav.planner import DWBLocalPlanner


class Generator:
    def __init__(self):
        self._twists = []

    def reset(self):
        pass

    def start_new_iteration(self, velocity):
        self._twists = [Twist2D(x=0.2), Twist2D(x=0.5), Twist2D(theta=0.3)]

    def has_more_twists(self):
        return bool(self._twists)

    def next_twist(self):
        return self._twists.pop(0)

    def generate_trajectory(self, pose, velocity, twist):
        end = Pose2D(pose.x + twist.x, pose.y, pose.theta + twist.theta)
        return Trajectory2D(velocity=twist, poses=[pose, end], time_offsets=[0.0, 1.0])


class PreferFast:
    name = "PreferFast"
    scale = 1.0

    def reset(self):
        pass

    def prepare(self, pose, velocity, goal, global_plan):
        return True

    def score_trajectory(self, traj):
        return 1.0 - traj.velocity.x

    def debrief(self, cmd_vel):
        pass

    def add_critic_visualization(self, cost_channels):
        pass


@dataclass
class Costmap:
    size_x: int = 100
    size_y: int = 100
    resolution: float = 0.05
    global_frame_id: str = "odom"

    def map_to_world(self, mx, my):
        return ((mx + 0.5) * self.resolution, (my + 0.5) * self.resolution)


planner = DWBLocalPlanner(Generator(), [PreferFast()], Costmap())
planner.set_plan(Path2D(frame_id="odom", poses=[Pose2D(x=0.25 * i) for i in range(9)]))
print(planner.compute_velocity_commands(Pose2D(), Twist2D()))  # Twist2D(x=0.5, ...)
```

By default the planner transforms poses only between identical frames. To work
across frames, pass a `transform(pose, source_frame, target_frame, tolerance)`
callable that returns the transformed `Pose2D`, or `None` when the transform is
not possible. If the costmap has a `lock` attribute, the planner holds it as a
context manager while the critics score.

## What the package does not do

- It ships no trajectory generators and no critics. You supply both, as objects
  with the methods the planner calls.
- It has no middleware or message-bus integration. Output goes only to the sink
  you give `DWBPublisher`, and nothing is published without one.
- It has no command-line program and loads no configuration files or plugins.
  Everything is configured in Python through `PlannerSettings` and
  `PublisherSettings`.

## Running the tests

```
pip install -e .[test]
pytest
```