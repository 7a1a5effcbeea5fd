"""Earshot: blind A/B listening trials."""

__version__ = "0.1.0"
