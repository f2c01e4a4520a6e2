"""
Prior-art ingestion and similarity analysis.

Turns submitted patent filings into versioned, embedded content and ranks
candidate prior filings against them for examiner review.
"""

__version__ = "0.1.0"
