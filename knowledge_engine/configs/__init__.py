"""
Configuration management module.

Provides centralized, type-safe configuration using Pydantic Settings.
All config modules support environment variable mapping with validation.
"""

from knowledge_engine.configs.database import DatabaseSettings
from knowledge_engine.configs.embedding import EmbeddingSettings
from knowledge_engine.configs.knowledge import KnowledgeSettings
from knowledge_engine.configs.settings import Settings, get_settings

__all__ = [
    "DatabaseSettings",
    "EmbeddingSettings",
    "KnowledgeSettings",
    "Settings",
    "get_settings",
]
