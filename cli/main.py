"""Review harvester CLI.

Usage:
    python cli/main.py --help

Commands:
    scrape          → harvest reviews from a product page
    find-sections   → list candidate review-section ids (no LLM call)
    serve           → run the HTTP API under uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from harvester.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from contextlib import nullcontext, redirect_stdout
from dataclasses import replace
from typing import Optional

import typer

from harvester.config import settings
from harvester.scraper.session import BrowserSessionError

app = typer.Typer(
    name="harvester",
    help="Product-review harvester CLI.",
    no_args_is_help=True,
)


@app.command("scrape")
def scrape(
    url: str = typer.Option(..., help="Product page URL."),
    max_cycles: Optional[int] = typer.Option(
        None, "--max-cycles", help="Override the page/scroll cycle limit."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print reviews as a JSON array."),
) -> None:
    """Harvest every review reachable from a product page."""
    from harvester.scraper.runner import scrape_reviews

    cfg = settings if max_cycles is None else replace(settings, max_cycles=max_cycles)

    if not as_json:
        typer.echo(f"[scrape] Harvesting {url!r} …")
    # Keep stdout clean for the JSON array; live progress goes to stderr.
    progress = redirect_stdout(sys.stderr) if as_json else nullcontext()
    try:
        with progress:
            reviews = scrape_reviews(url, cfg)
    except BrowserSessionError as exc:
        typer.echo(f"[scrape] Failed: {exc}", err=True)
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps([r.to_dict() for r in reviews], indent=2))
        return

    if not reviews:
        typer.echo("[scrape] No reviews found.")
        return
    typer.echo(f"[scrape] {len(reviews)} review(s):")
    for i, review in enumerate(reviews, start=1):
        typer.echo(f"  {i:>3}. [{review.rating or '?'}] {review.title!r}  — {review.reviewer or 'anonymous'}")
        if review.body:
            typer.echo(f"       {review.body}")


@app.command("find-sections")
def find_sections(
    url: str = typer.Option(..., help="Product page URL."),
) -> None:
    """List the review-section ids the heuristic finds on a page."""
    from harvester.scraper.locator import RegexSectionFinder
    from harvester.scraper.session import open_session

    finder = RegexSectionFinder()
    try:
        with open_session(settings) as session:
            session.navigate(url)
            markup = session.fetch_markup()
    except BrowserSessionError as exc:
        typer.echo(f"[find-sections] Failed: {exc}", err=True)
        raise typer.Exit(1)

    ids = finder.find_candidate_ids(markup)
    if not ids:
        typer.echo("[find-sections] No candidate sections found.")
        return
    document = finder.parse(markup)
    for candidate_id in ids:
        section = finder.extract_subtree(document, candidate_id)
        size = f"{len(section)} chars" if section is not None else "not found"
        typer.echo(f"  {candidate_id}  ({size})")


@app.command("serve")
def serve(
    host: str = typer.Option(settings.api_host, help="Bind address."),
    port: int = typer.Option(settings.api_port, help="Bind port."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    typer.echo(f"[serve] Listening on http://{host}:{port}")
    uvicorn.run("harvester.api.app:app", host=host, port=port)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
