"""
Dream Weaver: dream journal storage with semantic similarity search.
"""

__version__ = "1.0.0"
