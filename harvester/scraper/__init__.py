"""Scraper package — browser session, section location, extraction, pagination."""

from harvester.scraper.extractor import ExtractionError, ReviewParseError, extract_reviews
from harvester.scraper.locator import RegexSectionFinder, ReviewSectionFinder
from harvester.scraper.models import Review
from harvester.scraper.pagination import PaginationEngine
from harvester.scraper.runner import scrape_reviews
from harvester.scraper.session import BrowserSession, BrowserSessionError, open_session

__all__ = [
    "BrowserSession",
    "BrowserSessionError",
    "ExtractionError",
    "PaginationEngine",
    "RegexSectionFinder",
    "Review",
    "ReviewParseError",
    "ReviewSectionFinder",
    "extract_reviews",
    "open_session",
    "scrape_reviews",
]
