[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "envport"
version = "0.1.0"
description = "Snapshot, compare and restore sets of environment variables"
requires-python = ">=3.10"
dependencies = []
keywords = ["environment", "variables", "dotenv", "snapshot", "shell", "cli"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
envport = "envport.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["envport"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
