"""Strata scheme levy billing, payment allocation and trust reporting."""

__version__ = "0.1.0"
