"""Harvest to Kimai time entry synchronizer."""

__version__ = "0.1.0"
