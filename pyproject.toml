[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fmvoice"
version = "0.1.0"
description = "Read, inspect and convert FM synthesis instrument files for OPL and OPM chips"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "fm",
    "synthesis",
    "opl",
    "opm",
    "adlib",
    "ym2151",
    "ym3812",
    "instrument",
    "voice bank",
    "chiptune",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Conversion",
    "Topic :: Multimedia :: Sound/Audio :: Sound Synthesis",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
fmbankdump = "fmvoice.cli:fmbankdump_main"
bnkdump = "fmvoice.cli:bnkdump_main"
dmpdump = "fmvoice.cli:dmpdump_main"
insdump = "fmvoice.cli:insdump_main"
op3dump = "fmvoice.cli:op3dump_main"
opmdump = "fmvoice.cli:opmdump_main"

[tool.hatch.build.targets.wheel]
packages = ["fmvoice"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
