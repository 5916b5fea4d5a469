"""relpipe: build, archive and publish releases."""

__version__ = "0.3.0"
