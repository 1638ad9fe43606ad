"""
Application configuration management.

This module handles configuration from environment variables using Pydantic Settings.
"""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application configuration from environment variables.

    All settings can be overridden via environment variables with the same name.
    """

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Status thresholds
    accept_threshold: float = 0.6  # confidence >= 0.6 → accepted
    review_threshold: float = 0.3  # confidence >= 0.3 → needs_review
    ai_threshold: float = 0.4  # confidence < 0.4 → escalate (if scorer available)

    # Extraction
    code_min_length: int = 3
    code_max_length: int = 15
    low_tier_max_prior_codes: int = 2  # LOW tier only runs below this many codes
    flat_discount_max: float = 10000.0
    source_rules_path: str = ""  # Optional JSON file with per-source overlays
    link_domain_allowlist: List[str] = []  # Non-empty → only links on these domains (JSON list in env)

    # Confidence scoring weights
    score_weight_code: float = 0.65
    score_weight_context: float = 0.2
    score_weight_link: float = 0.1
    score_coherence_bonus: float = 0.1
    score_spam_code_limit: int = 5

    # Escalation (secondary scorer)
    escalation_enabled: bool = True
    escalation_max_concurrency: int = 4
    escalation_requests_per_minute: int = 18
    escalation_window_seconds: float = 60.0
    escalation_timeout_seconds: float = 15.0
    escalation_excerpt_chars: int = 800
    escalation_queue_size: int = 32  # waiting escalations beyond the worker slots

    # LLM Provider Configuration
    llm_provider: str = "openai"  # "openai" | "deepseek" | "openrouter" | "ollama"
    llm_model: str = "gpt-3.5-turbo"
    llm_api_key: str = ""  # Optional for Ollama, required for cloud providers
    llm_api_base_url: str = ""  # Empty → provider default
    llm_temperature: float = 0.1
    llm_max_tokens: int = 400
    llm_max_retries: int = 1  # Failed escalations are retried from the failure log
    llm_retry_delay_seconds: float = 1.0

    # Failure log
    failure_log_path: str = "failed-ai-requests.jsonl"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


# Global settings instance
settings = Settings()
