"""Storage backends for groups, posts and the generation log."""

from __future__ import annotations

from ..config import StoreConfig
from ..errors import ConfigError
from .base import COUNTED_STATUSES, NewsStore
from .memory import MemoryStore
from .supabase import SupabaseStore

__all__ = ["COUNTED_STATUSES", "MemoryStore", "NewsStore", "SupabaseStore", "create_store"]


def create_store(cfg: StoreConfig) -> NewsStore:
    backend = cfg.backend.lower().strip()
    if backend == "memory":
        if cfg.seed_path:
            return MemoryStore.from_yaml(cfg.seed_path)
        return MemoryStore()
    if backend == "supabase":
        return SupabaseStore(cfg)
    raise ConfigError(f"Unsupported store backend: {cfg.backend}. Supported: memory, supabase")
