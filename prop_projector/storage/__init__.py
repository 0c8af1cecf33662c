"""Model persistence."""

from .model_store import InMemoryModelStore, JsonModelStore, ModelStore

__all__ = ["InMemoryModelStore", "JsonModelStore", "ModelStore"]
