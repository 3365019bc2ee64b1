[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "reactorkit"
version = "0.1.0"
description = "A one-loop-per-thread TCP networking library for Linux: epoll event loops, timers, loop thread pools, buffered connections and rolling log files."
requires-python = ">=3.10"
dependencies = []
keywords = ["reactor", "event loop", "tcp", "networking", "epoll", "logging", "timers"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["reactorkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
