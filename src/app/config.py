from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central application configuration."""

    app_name: str = Field(default="Hostel AI Agent")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    agent_host: str = Field(default="0.0.0.0")
    agent_port: int = Field(default=3002)

    # Ollama
    ollama_api_url: str = Field(default="http://localhost:11434/api")
    ollama_model: str = Field(default="mistral")
    temperature: float = Field(default=0.7)
    llm_timeout: float = Field(
        default=60.0,
        description="Seconds before a model call is abandoned",
    )

    # MCP tool server
    mcp_server_url: str = Field(
        default="http://localhost:3001",
        validation_alias=AliasChoices("MCP_SERVER_URL", "TOOL_SERVER_URL"),
    )
    request_timeout: float = Field(
        default=30.0,
        description="Seconds before a tool server call is abandoned",
    )

    # Agent
    max_tool_calls: int = Field(default=5, ge=1)
    tool_filter_cap: int = Field(default=15, ge=1)
    history_window: int = Field(default=10, ge=1)
    prompt_history_turns: int = Field(default=6, ge=0)
    session_ttl_seconds: int = Field(default=3600, ge=1)

    allowed_origins: List[str] = Field(
        default_factory=list,
        validation_alias="ALLOWED_ORIGINS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
