"""ChangePlane - workspace change tracking against a baseline snapshot."""

__version__ = "0.1.0"
