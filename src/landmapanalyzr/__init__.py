"""LandMapAnalyzr - Land plot investment analysis for the Israeli market."""

__version__ = "1.0.0"
