"""
Bilidash Core Settings.

All runtime configuration comes from the environment (prefix ``BILIDASH_``)
or a local ``.env`` file. Every setting has a working default so the service
boots offline against the in-memory document store.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8",
        env_prefix="BILIDASH_", case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "Bilidash"
    app_version: str = "0.3.0"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # ── Cloud storage (covers) ───────────────────────────────────────────
    cloud_storage_domain: str = (
        "https://636c-cloud1-3gy44slx114f4c73-1258339218.tcb.qcloud.la"
    )
    cover_path: str = "covers/"

    @property
    def cover_base_url(self) -> str:
        """Prefix used when a raw cover field is a bare filename."""
        return f"{self.cloud_storage_domain.rstrip('/')}/{self.cover_path}"

    # ── Document store ───────────────────────────────────────────────────
    # "memory" keeps projects in-process (empty on boot); "json" reads
    # one <project_id>.json per project under data_dir/collection.
    document_store_backend: str = "memory"
    collection_name: str = "bilibili-data"
    data_dir: str = "./data"
    project_list_limit: int = 1000

    # ── Chat completion (DeepSeek, OpenAI-compatible) ────────────────────
    deepseek_api_key: Optional[str] = None
    deepseek_base_url: str = "https://api.deepseek.com"
    chat_model: str = "deepseek-chat"
    chat_temperature: float = 0.2
    max_videos_in_prompt: int = 50


@lru_cache()
def get_settings() -> Settings:
    return Settings()
