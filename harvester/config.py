"""Centralised settings for the review harvester.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

The scraping core never reads the module-level ``settings`` itself: the CLI
and the API build (or reuse) a :class:`Settings` value once and hand it to
:class:`~harvester.scraper.pagination.PaginationEngine` explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Browser session
    # ------------------------------------------------------------------
    browser_host: str = field(
        default_factory=lambda: os.environ.get("BROWSER_HOST", "")
    )
    browser_port: int = field(
        default_factory=lambda: int(os.environ.get("BROWSER_PORT", "9222"))
    )
    headless: bool = field(
        default_factory=lambda: _env_flag("BROWSER_HEADLESS", "true")
    )
    implicit_wait: float = field(
        default_factory=lambda: float(os.environ.get("IMPLICIT_WAIT", "10.0"))
    )
    page_load_timeout: float = field(
        default_factory=lambda: float(os.environ.get("PAGE_LOAD_TIMEOUT", "30.0"))
    )

    @property
    def browser_endpoint(self) -> str:
        """CDP endpoint of the remote browser, e.g. ``http://selenium:9222``."""
        return f"http://{self.browser_host}:{self.browser_port}"

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------
    settle_delay: float = field(
        default_factory=lambda: float(os.environ.get("SETTLE_DELAY", "2.0"))
    )
    max_cycles: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CYCLES", "25"))
    )
    time_budget: float = field(
        default_factory=lambda: float(os.environ.get("TIME_BUDGET", "300.0"))
    )

    # ------------------------------------------------------------------
    # Completion service
    # ------------------------------------------------------------------
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "openai")
    )
    openai_chat_model: str = field(
        default_factory=lambda: os.environ.get("OPENAI_CHAT_MODEL", "llama-3.3-70b-versatile")
    )
    openai_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "OPENAI_BASE_URL", "https://api.groq.com/openai/v1"
        )
    )
    openai_api_key: str = field(
        default_factory=lambda: os.environ.get(
            "GROQ_API_KEY", os.environ.get("OPENAI_API_KEY", "")
        )
    )
    ollama_base_url: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    )
    ollama_chat_model: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_CHAT_MODEL", "llama3.1:8b")
    )
    llm_temperature: float = field(
        default_factory=lambda: float(os.environ.get("LLM_TEMPERATURE", "0.8"))
    )
    llm_max_tokens: int = field(
        default_factory=lambda: int(os.environ.get("LLM_MAX_TOKENS", "4096"))
    )

    # ------------------------------------------------------------------
    # HTTP API
    # ------------------------------------------------------------------
    api_host: str = field(
        default_factory=lambda: os.environ.get("API_HOST", "0.0.0.0")
    )
    api_port: int = field(
        default_factory=lambda: int(os.environ.get("API_PORT", "3000"))
    )


# Module-level singleton for the outer layers (CLI, API):
#   from harvester.config import settings
settings = Settings()
