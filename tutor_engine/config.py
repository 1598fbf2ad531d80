"""
Configuration Management for the AI Tutor Orchestration Engine

This module provides centralized configuration using Pydantic Settings.
All configuration is loaded from environment variables with sensible defaults.

Usage:
    from tutor_engine.config import settings

    api_key = settings.openai_api_key
    window = settings.history_window
"""

from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


# Type aliases for clarity
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
Environment = Literal["development", "production", "testing"]
LLMProvider = Literal["openai", "anthropic"]
RoutingStrategyName = Literal["keyword", "ai"]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Create a .env file in the project root with your configuration:
        OPENAI_API_KEY=sk-...
        LOG_LEVEL=INFO
        ROUTING_STRATEGY=keyword

    Attributes:
        openai_api_key: OpenAI API key
        anthropic_api_key: Anthropic API key (when app_llm_provider=anthropic)
        app_llm_provider: Which completion provider to use
        llm_model: Chat model for OpenAI completions
        anthropic_model: Model for Anthropic completions

        log_level: Global logging level
        log_to_file: Whether to log to file
        log_format: Log format (json or text)

        history_window: Prior messages sent as multi-turn context
        max_response_length: Character budget stated in every agent prompt
        default_max_agents: Agents picked by relevance in collaborative mode
        agent_timeout_seconds: Timeout for a single agent completion call
        routing_strategy: "keyword" (default) or "ai" with keyword fallback
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===========================================
    # API Keys
    # ===========================================
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # ===========================================
    # LLM Provider
    # ===========================================
    app_llm_provider: LLMProvider = "openai"
    llm_model: str = "gpt-4o-mini"
    anthropic_model: str = "claude-sonnet-4-5"
    llm_max_tokens: int = 1024

    # ===========================================
    # Environment
    # ===========================================
    env: Environment = "development"
    debug: bool = True

    # ===========================================
    # Logging Configuration
    # ===========================================
    log_level: LogLevel = "INFO"
    log_to_file: bool = False
    log_file_path: str = "logs/tutor_engine.log"
    log_format: Literal["json", "text"] = "json"

    # Verbose logging options
    log_llm_prompts: bool = False
    log_llm_responses: bool = False

    # ===========================================
    # LLM Configuration
    # ===========================================
    llm_timeout_seconds: int = 60
    llm_max_retries: int = 3

    # ===========================================
    # Tutor Configuration
    # ===========================================
    history_window: int = 10
    default_temperature: float = 0.7
    max_response_length: int = 500
    default_max_agents: int = 2
    random_max_agents: int = 3
    debate_rounds: int = 2
    agent_timeout_seconds: int = 30
    routing_strategy: RoutingStrategyName = "keyword"
    routing_temperature: float = 0.3
    agents_file: Optional[str] = None

    # ===========================================
    # Interaction Log Configuration
    # ===========================================
    interaction_log_queue_size: int = 1000
    max_logs_per_user: int = 500


class RoutingConfig:
    """
    Scoring constants for the keyword router.

    The rule table itself lives in tutor_engine.agents.router; these are the
    numbers every rule is scored against.
    """

    BASELINE_SCORE: float = 0.3
    MAX_SCORE: float = 0.95
    WORD_BONUS: float = 0.05
    MAX_WORD_BONUS: float = 0.15
    MIN_CONTENT_WORD_LENGTH: int = 5

    DEFAULT_REASON = "Default selection"
    RANDOM_REASON = "Random selection"
    AI_DEFAULT_REASON = "AI-based routing"
    AI_DEFAULT_CONFIDENCE = 0.8
    AI_DEFAULT_ALTERNATIVE_SCORE = 0.5


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.

    Returns:
        Settings instance loaded from environment
    """
    return Settings()


# Singleton instance for easy import
settings = get_settings()
