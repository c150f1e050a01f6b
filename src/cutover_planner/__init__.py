"""Collaborative Gantt planning for data-migration cutovers."""

__version__ = "0.1.0"
