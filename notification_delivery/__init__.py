"""Reliable email and SMS delivery with retry, queueing and suppression."""

__version__ = "1.0.0"
