"""Odds normalisation, de-vig and EV scoring engine."""

__version__ = "1.0.0"
