"""Dental Works: patient records and weekly appointment calendar."""

__version__ = "0.1.0"
