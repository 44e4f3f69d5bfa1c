"""
Tree data engine for tree picker / tree editor controls.

Node model, pure mutation operations, tri-state selection, search and
ancestor-path helpers over trees stored as lists of plain dicts.
"""

__version__ = "1.0.0"
