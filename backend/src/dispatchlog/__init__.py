"""Receive & dispatch logging backend: task lifecycle, routing and sign-off."""

__version__ = "0.1.0"
