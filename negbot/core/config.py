"""
Application configuration using pydantic-settings.

WHAT: Centralized config from environment variables
WHY: Type-safe, validated config with sensible defaults
HOW: Pydantic BaseSettings reads from .env and environment
"""

from pydantic_settings import BaseSettings
from pydantic import field_validator
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App metadata
    APP_NAME: str = "Negotiation Orchestrator"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./data/negotiations.db"

    # Agent runtime (OpenAI-compatible chat completions with tool calling)
    LLM_BASE_URL: str = "https://openrouter.ai/api/v1"
    LLM_API_KEY: str = ""
    LLM_MODEL: str = "anthropic/claude-sonnet-4.5"
    LLM_TIMEOUT: int = 60  # seconds
    LLM_MAX_RETRIES: int = 3
    LLM_RETRY_DELAY: float = 2  # seconds, base for exponential backoff
    LLM_DEFAULT_TEMPERATURE: float = 0.0
    LLM_DEFAULT_MAX_TOKENS: int = 2048

    # Vendor messaging channel
    MESSAGING_BASE_URL: str = "http://localhost:8080"
    MESSAGING_TEAM_ID: str = ""
    MESSAGING_TIMEOUT: int = 120  # vendor replies are generated server-side

    # Negotiation loop
    MAX_AGENT_STEPS: int = 10  # tool-call iterations per turn
    MAX_SESSION_ITERATIONS: int = 50
    MAX_CONSECUTIVE_NO_PROGRESS: int = 3
    SESSION_ITERATION_DELAY: float = 0.1  # seconds between turns
    PARALLEL_SESSION_LIMIT: int = 10

    # Tool contract policy
    ALLOW_REPEATED_FINISH: bool = False
    ENFORCE_TOOL_SEQUENCING: bool = False
    REQUIRE_NEGOTIATION_RECORD: bool = False

    # Principal the agent negotiates for
    BUYER_NAME: str = "Simon Spatz"
    BUYER_COMPANY: str = "Spatz GmbH"

    # Completion notification (Resend)
    RESEND_API_KEY: str = ""
    RESEND_FROM_EMAIL: str = "onboarding@resend.dev"
    NOTIFY_EMAIL: str = ""
    DASHBOARD_URL: str = "http://localhost:5173"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./data/logs/app.log"

    @field_validator("LLM_BASE_URL", "MESSAGING_BASE_URL", "DASHBOARD_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs so paths can be appended with '/'."""
        return v.rstrip("/")

    class Config:
        env_file = [
            str(Path(__file__).parent.parent.parent / ".env"),  # repository root
            ".env",
        ]
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Singleton instance
settings = Settings()
