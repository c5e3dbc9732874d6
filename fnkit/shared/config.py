"""Configuration management using Pydantic Settings."""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Workspace and runtime settings loaded from ``FNKIT_*`` environment variables."""

    # Workspace layout (relative entries resolve against root_dir)
    root_dir: Path = Field(default_factory=Path.cwd)
    tools_dir: str = "tools"
    agents_dir: str = "agents"
    cache_dir: str = "cache"
    tools_list: str = "tools.txt"
    agents_list: str = "agents.txt"
    functions_file: str = "functions.json"
    agent_index: str = "index.yaml"

    # Language runtimes
    bash_bin: str = "bash"
    python_bin: str = Field(default_factory=lambda: sys.executable or "python3")
    node_bin: str = "node"

    # Logging
    log_level: str = "WARNING"
    log_format: str = "console"  # "console" or "json"

    model_config = SettingsConfigDict(env_prefix="FNKIT_", env_file=".env", extra="ignore")

    def model_post_init(self, __context: object) -> None:
        """Pin root_dir to an absolute path.

        Children receive it as ``LLM_ROOT_DIR`` and may run from another
        working directory.
        """
        self.root_dir = Path(self.root_dir).expanduser().resolve()


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
