"""Read, inspect and convert FM synthesis instrument files for OPL and OPM chips."""

__version__ = "0.1.0"