[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "skale"
version = "0.1.0"
description = "Replay reports, node headroom sanity checks and an SVG timeline for predictive autoscaling recommendations"
requires-python = ">=3.10"
keywords = ["autoscaling", "replay", "kubernetes", "headroom", "report", "svg"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
]
dependencies = []

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["skale"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
