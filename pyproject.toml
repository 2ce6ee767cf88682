[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cloudconf"
version = "0.1.0"
description = "Parse, decode and validate cloud-config user-data documents"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["cloud-config", "user-data", "validation", "yaml", "provisioning"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Installation/Setup",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["cloudconf"]

[tool.pytest.ini_options]
addopts = "-ra"
