"""Headless Google Maps business listing extractor."""

__version__ = "1.0.0"
