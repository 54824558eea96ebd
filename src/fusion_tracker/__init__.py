"""Fusion Tracker: odometry and vision pose fusion for mobile robots."""

__version__ = "0.1.0"
