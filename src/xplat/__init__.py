"""xplat - cross-platform repository analysis and fix engine."""

__version__ = "0.1.0"
