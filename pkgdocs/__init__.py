"""Locate, fetch and install documentation bundled with installed packages."""

__version__ = "0.1.0"
