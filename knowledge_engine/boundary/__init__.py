"""
Boundary layer for external system integrations.

Handles all interactions with external systems: PostgreSQL (entries,
full-text and vector search) and the embedding provider APIs.
"""
