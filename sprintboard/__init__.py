"""Sprintboard - sprint and task tracking API with live viewer synchronization"""

__version__ = "1.0.0"
