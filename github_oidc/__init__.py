"""Passwordless GitHub Actions -> Azure authentication setup."""

__version__ = "1.0.0"
