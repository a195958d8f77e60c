"""
AutoSolve - local core of the vehicle diagnostic assistant.

Usage accounting, diagnostic history, repair outcome follow-ups and
community "what fixed it" statistics.
"""

__version__ = "1.0.0"
