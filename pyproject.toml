[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "overlord"
version = "0.4.2"
description = "Building blocks of the Overlord BFT consensus protocol: round state machine, message types and RLP codec."
requires-python = ">=3.10"
keywords = ["consensus", "bft", "distributed-systems", "rlp", "state-machine"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: System :: Distributed Computing",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["overlord"]

[tool.pytest.ini_options]
addopts = "-ra"
