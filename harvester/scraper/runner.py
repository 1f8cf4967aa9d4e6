"""High-level entry point: one URL in, one list of reviews out.

``scrape_reviews`` owns the whole lifetime of a scrape: it builds the
completion model, opens an exclusive browser session, runs the pagination
engine and always closes the session again (success or error).
"""

from __future__ import annotations

from typing import Any, List, Optional

from harvester.config import Settings, settings as default_settings
from harvester.scraper.models import Review
from harvester.scraper.pagination import PaginationEngine
from harvester.scraper.session import open_session


def _get_llm(cfg: Settings) -> Any:
    """Return a LangChain chat model configured for review extraction."""
    if cfg.llm_provider == "ollama":
        from langchain_ollama import ChatOllama

        return ChatOllama(
            model=cfg.ollama_chat_model,
            base_url=cfg.ollama_base_url,
            temperature=cfg.llm_temperature,
            num_predict=cfg.llm_max_tokens,
        )

    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=cfg.openai_chat_model,
        base_url=cfg.openai_base_url,
        api_key=cfg.openai_api_key or None,
        temperature=cfg.llm_temperature,
        max_tokens=cfg.llm_max_tokens,
    )


def scrape_reviews(url: str, cfg: Optional[Settings] = None) -> List[Review]:
    """Harvest all reviews reachable from the product page at *url*.

    Args:
        url: Product page to scrape.
        cfg: Settings for this run.  Defaults to the process-wide
            :data:`harvester.config.settings`.

    Raises:
        BrowserSessionError: The browser could not be reached, or navigation
            or scrolling failed.
    """
    cfg = cfg or default_settings
    llm = _get_llm(cfg)
    with open_session(cfg) as session:
        engine = PaginationEngine(session, llm, cfg)
        return engine.run(url)
