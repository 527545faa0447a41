"""
bandstat - Band Power Analysis

Measures how signal power is distributed across 14 fixed frequency bands,
unweighted and K-weighted, and how stable that distribution is over time.
"""

__version__ = "1.0.0"
