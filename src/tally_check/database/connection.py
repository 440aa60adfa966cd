from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from supabase import Client, create_client

logger = logging.getLogger(__name__)


@dataclass
class SupabaseConfig:
    url: str
    anon_key: str


class SupabaseConnection:
    """Singleton-like Supabase client holder.

    Note: The SDK client is created lazily on first use and shared by all
    repositories of the process.
    """

    _instance: Optional["SupabaseConnection"] = None

    def __init__(self, config: SupabaseConfig):
        self._config = config
        self._client: Optional[Client] = None

    @classmethod
    def get_instance(cls, config: SupabaseConfig) -> "SupabaseConnection":
        if cls._instance is None:
            cls._instance = SupabaseConnection(config)
        return cls._instance

    @property
    def config(self) -> SupabaseConfig:
        return self._config

    def client(self) -> Client:
        if self._client is None:
            logger.info("Creating Supabase client for %s", self._config.url)
            self._client = create_client(self._config.url, self._config.anon_key)
        return self._client
