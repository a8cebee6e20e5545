"""
Shared model utilities.

ORM models live beside the code that owns them:
- horizon.data.models: historical entities written by CRUD collaborators
- horizon.analytics.models: artifacts produced by the analytics engine
"""
from horizon.models.base import JSONType, generate_id, is_valid_id

__all__ = ["JSONType", "generate_id", "is_valid_id"]
