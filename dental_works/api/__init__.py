"""REST API for Dental Works."""
