[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dwbnav"
version = "0.1.0"
description = "Dynamic window local planning core: costmap distance queues, trajectory scoring and plan visualization"
requires-python = ">=3.10"
dependencies = []
keywords = ["robotics", "navigation", "local-planner", "dwa", "costmap", "trajectory"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dwbnav"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
