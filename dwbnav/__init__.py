"""Dynamic window local planning: costmap distance queues, trajectory scoring and debug output."""

__version__ = "0.1.0"

__all__ = [
    "map_based_queue",
    "costmap_queue",
    "messages",
    "errors",
    "illegal_trajectory_tracker",
    "trajectory_utils",
    "visualization",
    "planner",
]