"""Command-line interface for Dental Works."""
