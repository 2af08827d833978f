"""Configuration settings for the chat participant."""

# Load .env into os.environ so provider API keys (e.g. OPENAI_API_KEY) reach litellm
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List


class Settings(BaseSettings):
    """Global settings for the chat participant.

    Settings can be overridden via environment variables with CHAT_PARTICIPANT_ prefix.
    Example: CHAT_PARTICIPANT_UPSTREAM_STALL_TIMEOUT_SECONDS=30
    """

    # Model config
    default_model: str = Field(
        default="gpt-4o-mini",
        description="LiteLLM model string used when no provider/model is given"
    )
    max_tokens_per_turn: int = Field(
        default=4096,
        description="Maximum tokens the model may stream for one turn"
    )

    # Upstream
    upstream_stall_timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Seconds to wait for the next fragment before failing the turn"
    )

    # Project files (relative to the project root)
    manifest_files: List[str] = Field(
        default_factory=lambda: ["package.json", "pyproject.toml"],
        description="Dependency manifests, first existing file wins"
    )
    constraints_file: str = Field(
        default=".github/constraints.md",
        description="Line-oriented constraints file"
    )

    # Logging
    log_level: str = Field(
        default="WARNING",
        description="Log level for the CLI handler"
    )

    model_config = {
        "env_prefix": "CHAT_PARTICIPANT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",  # ignore provider keys (OPENAI_API_KEY etc.) not in schema
    }


# Create singleton instance
settings = Settings()
