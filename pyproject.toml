[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cowsqlkit"
version = "0.1.0"
description = "Node stores, role management, proxying, TLS and benchmarking helpers for cowsql clusters"
requires-python = ">=3.10"
keywords = ["cowsql", "sqlite", "raft", "cluster", "database", "benchmark"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Typing :: Typed",
]
dependencies = [
    "pyyaml>=6.0",
    "psutil>=5.9",
    "cryptography>=41.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[tool.hatch.build.targets.wheel]
packages = ["cowsqlkit"]

[tool.hatch.build.targets.sdist]
include = ["cowsqlkit", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
check_untyped_defs = true
