"""Reporting gateway: admin-only sales reports over the data service."""

__version__ = "1.0.0"
