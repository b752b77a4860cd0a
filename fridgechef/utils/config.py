"""Configuration management for FridgeChef.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults
"""

import os
from typing import List

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()


DEFAULT_VISION_MODELS = (
    "google/gemini-2.0-flash-exp:free,"
    "meta-llama/llama-3.2-11b-vision-instruct:free,"
    "qwen/qwen2.5-vl-72b-instruct:free,"
    "mistralai/mistral-small-3.1-24b-instruct:free"
)

DEFAULT_TEXT_MODELS = (
    "meta-llama/llama-3.3-70b-instruct:free,"
    "google/gemini-2.0-flash-exp:free,"
    "deepseek/deepseek-chat:free,"
    "mistralai/mistral-7b-instruct:free"
)

# Substrings (case-insensitive) that upstream error messages use for account-wide limits
DEFAULT_QUOTA_ERROR_PATTERNS = (
    "free-models-per-day,"
    "free-models-per-min,"
    "daily limit,"
    "quota exceeded,"
    "insufficient_quota,"
    "insufficient credits"
)


def _split_list(raw: str) -> List[str]:
    """Split a comma-separated env value into a list of non-empty stripped items."""
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Bearer token for the OpenAI-compatible chat-completion endpoint
        self.OPENROUTER_API_KEY: str = os.getenv("OPENROUTER_API_KEY", "")
        self.OPENROUTER_BASE_URL: str = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
        # Fallback chains: tried left to right, first usable answer wins
        self.VISION_MODELS: List[str] = _split_list(os.getenv("VISION_MODELS", DEFAULT_VISION_MODELS))
        self.TEXT_MODELS: List[str] = _split_list(os.getenv("TEXT_MODELS", DEFAULT_TEXT_MODELS))
        # Per-invocation timeout. An expired call counts as a retryable failure.
        self.REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "45"))
        # Whole-chain deadline. 0 disables it.
        self.CHAIN_TIMEOUT_SECONDS: float = float(os.getenv("CHAIN_TIMEOUT_SECONDS", "120"))
        self.DETECTION_MAX_TOKENS: int = int(os.getenv("DETECTION_MAX_TOKENS", "1000"))
        self.RECIPE_MAX_TOKENS: int = int(os.getenv("RECIPE_MAX_TOKENS", "1500"))
        # Temperature: 0.7 keeps recipes varied without drifting off the JSON format
        self.TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.7"))
        self.QUOTA_ERROR_PATTERNS: List[str] = [
            pattern.lower()
            for pattern in _split_list(os.getenv("QUOTA_ERROR_PATTERNS", DEFAULT_QUOTA_ERROR_PATTERNS))
        ]
        # Attribution headers sent to OpenRouter
        self.APP_REFERER: str = os.getenv("APP_REFERER", "http://localhost:3000")
        self.APP_TITLE: str = os.getenv("APP_TITLE", "FridgeChef")

    @property
    def chain_deadline(self) -> float | None:
        """Chain deadline in seconds, or None when disabled."""
        return self.CHAIN_TIMEOUT_SECONDS if self.CHAIN_TIMEOUT_SECONDS > 0 else None

    def validate(self) -> None:
        """Validate required configuration.

        Raises:
            ValueError: If the API key is missing or invalid values provided.
        """
        if not self.OPENROUTER_API_KEY:
            raise ValueError("OPENROUTER_API_KEY environment variable is required")
        if not self.VISION_MODELS:
            raise ValueError("VISION_MODELS must list at least one model")
        if not self.TEXT_MODELS:
            raise ValueError("TEXT_MODELS must list at least one model")
        if self.REQUEST_TIMEOUT_SECONDS <= 0:
            raise ValueError(
                f"REQUEST_TIMEOUT_SECONDS must be positive, got: {self.REQUEST_TIMEOUT_SECONDS}"
            )
        if self.CHAIN_TIMEOUT_SECONDS < 0:
            raise ValueError(
                f"CHAIN_TIMEOUT_SECONDS must be 0 (disabled) or positive, got: {self.CHAIN_TIMEOUT_SECONDS}"
            )
        if not (0.0 <= self.TEMPERATURE <= 2.0):
            raise ValueError(
                f"TEMPERATURE must be between 0.0 and 2.0, got: {self.TEMPERATURE}"
            )
        if self.DETECTION_MAX_TOKENS < 256 or self.RECIPE_MAX_TOKENS < 256:
            raise ValueError(
                "DETECTION_MAX_TOKENS and RECIPE_MAX_TOKENS must be at least 256, "
                f"got: {self.DETECTION_MAX_TOKENS}, {self.RECIPE_MAX_TOKENS}"
            )


# Module-level config instance. Entry points call config.validate() before serving requests.
config = Config()
