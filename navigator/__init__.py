"""Company search consolidation service for the sales navigator."""

__version__ = "0.1.0"
