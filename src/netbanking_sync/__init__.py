"""Kotak / Axis netbanking automation with an OTP relay read from MongoDB."""

__version__ = "0.1.0"
