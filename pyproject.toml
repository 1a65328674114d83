[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "clusterlint"
version = "0.1.0"
description = "Linter for Kubernetes objects fetched from a live cluster"
requires-python = ">=3.10"
keywords = ["kubernetes", "lint", "cluster", "doks", "best-practices", "security"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Topic :: Software Development :: Quality Assurance",
]
dependencies = [
    "requests",
    "pyyaml",
    "termcolor",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
clusterlint = "clusterlint.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["clusterlint"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
