"""Live documentation index over local directories and online pages."""

__version__ = "0.1.0"
