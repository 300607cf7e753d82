from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Chunking defaults (CLI flags override these)
    CHUNK_MAX_TOKENS: int = 200  # Token budget per chunk
    CHUNK_OVERLAP_TOKENS: int = Field(default=0, ge=0)  # Repeated context tokens
    CHUNK_STRATEGY: str = "adaptive"  # adaptive or a strategy name
    CHUNK_ALLOW_FALLBACK: bool = True  # Re-split oversized blocks
    CHUNK_TOKENIZER: str = "heuristic"  # heuristic|tiktoken
    TIKTOKEN_MODEL: str = "text-embedding-3-small"

    # Observability & UI
    PREVIEW_CHUNKS: int = Field(default=10, ge=0)  # Chunks printed by the CLI preview
    LOG_FORMAT: str = "auto"  # json|plain|auto
    LOG_LEVEL: str = "warning"
    NO_COLOR: bool = False  # Disable colored output

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @classmethod
    def load_config(cls, config_file: Optional[str] = None) -> "Settings":
        """Load settings with config file -> env -> CLI precedence."""
        config_data: Dict[str, Any] = {}

        # Find config file
        if config_file:
            config_path = Path(config_file)
        else:
            # Auto-discover .adaptive-chunker.{yaml,yml,toml}
            for ext in ["yaml", "yml", "toml"]:
                config_path = Path(f".adaptive-chunker.{ext}")
                if config_path.exists():
                    break
            else:
                config_path = None

        # Load config file if found
        if config_path and config_path.exists():
            if config_path.suffix in [".yaml", ".yml"]:
                import yaml  # type: ignore[import-untyped]

                with open(config_path) as f:
                    config_data = yaml.safe_load(f) or {}
            elif config_path.suffix == ".toml":
                import tomllib

                with open(config_path, "rb") as f:
                    config_data = tomllib.load(f)

        # Init kwargs beat the environment in pydantic-settings, so re-apply
        # values that came from the environment over the config file
        env_values = cls().model_dump(exclude_unset=True)
        return cls(**{**config_data, **env_values})

