"""
toolbridge — run external tools and small functions as editor sources.

Diagnostics, formatting, code actions and hover text are produced by
registered generators and combined into one result per request.
"""

__version__ = "0.1.0"
