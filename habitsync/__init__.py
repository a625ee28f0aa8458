"""
habitsync - scoped habit record store and analytics engine.
"""

__version__ = "1.0.0"
