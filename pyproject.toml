[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lakerunner"
version = "0.1.0"
description = "Metadata store access, segment partitioning and work-queue lock management for a telemetry data lake"
requires-python = ">=3.11"
keywords = ["telemetry", "postgresql", "work-queue", "metadata", "segments"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
]
dependencies = [
    "cachetools>=5.3",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[tool.hatch.build.targets.wheel]
packages = ["lakerunner"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
