[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "livehub"
version = "0.1.0"
description = "Workspace publishing, document reloading, content adapters and a small TCP message protocol for live reloading of UI documents"
requires-python = ">=3.10"
keywords = ["live-reload", "ipc", "workspace", "preview", "hub", "overlay"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: User Interfaces",
]
dependencies = [
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["livehub"]

[tool.pytest.ini_options]
addopts = "-ra"
