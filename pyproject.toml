[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tickbar"
version = "0.1.0"
description = "Terminal progress rendering: human-readable formatting, draw targets, multi-line layout and an in-memory terminal"
requires-python = ">=3.10"
dependencies = [
    "wcwidth",
]
keywords = ["progress", "terminal", "cli", "formatting", "ansi"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Terminals",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["tickbar"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
