"""Ampere - watch-mode build orchestration for desktop runtime apps."""

__version__ = "0.1.0"
