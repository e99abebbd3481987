[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "taperipper"
version = "0.1.0"
description = "Console logging, unwind tables and developer tasks for the Taperipper UEFI application"
requires-python = ">=3.10"
dependencies = []
keywords = ["uefi", "ovmf", "qemu", "logging", "pe", "unwind", "gdb"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Boot",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
taperipper-xtask = "taperipper.xtask.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["taperipper"]

[tool.pytest.ini_options]
addopts = "-ra"
