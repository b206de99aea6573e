"""
Knowledge ingestion and hybrid retrieval engine.

Turns text documents into chunked, embedded knowledge entries stored in
PostgreSQL and answers queries by fusing full-text and vector rankings.
"""

__version__ = "0.1.0"
