"""
CollabSense - work-pattern analytics and recommendation engine.

Turns raw activity events into per-user work patterns, recommends
connections, detects similar work, generates project insights, and
dispatches notifications to connected clients.
"""

__version__ = "1.0.0"
