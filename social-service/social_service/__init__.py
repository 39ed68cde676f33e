"""
Social Service - follow relationships, content visibility, engagement counters,
tags and notifications
"""

__version__ = "1.0.0"
