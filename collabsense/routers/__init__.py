"""API routers for the CollabSense engine."""
