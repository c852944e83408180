# src/remotejobs/cli.py
"""
Command-line interface for the remote jobs cache.

This module provides CLI commands to:
- Refresh the cache from every source (what the scheduler runs)
- Read jobs the way the HTTP endpoint does (cache first, live fallback)
- List the configured sources
- Serve the read endpoint over HTTP
"""

import asyncio
import json
import logging
import sys
from typing import Optional

import typer

from remotejobs.config import Settings, load_settings
from remotejobs.errors import CacheWriteFailure, FatalPipelineError
from remotejobs.service import SOURCE_CLASSES, open_pipeline

# Typer app instance for CLI commands
app = typer.Typer(help="Remote job listings: aggregate, cache, serve")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    # one line per request is too much at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _settings() -> Settings:
    try:
        settings = load_settings()
    except ValueError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(2)
    configure_logging(settings.log_level)
    return settings


async def _refresh(settings: Settings, timeout: float) -> dict:
    async with open_pipeline(settings) as pipeline:
        # the whole run is abandoned past the budget; nothing is written then
        meta = await asyncio.wait_for(pipeline.refresh(), timeout=timeout)
    return meta.to_dict()


@app.command()
def refresh(
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Wall-clock budget in seconds"),
):
    """
    Aggregate every source and replace the cached generation.
    Exits non-zero when the cache could not be written or the budget ran out.
    """
    settings = _settings()
    budget = timeout if timeout is not None else settings.refresh_timeout
    if budget <= 0:
        typer.echo(f"--timeout must be positive, got {budget:g}", err=True)
        raise typer.Exit(2)
    try:
        summary = asyncio.run(_refresh(settings, budget))
    except asyncio.TimeoutError:
        typer.echo(f"Refresh abandoned after {budget:g}s; cache left unchanged.", err=True)
        raise typer.Exit(1)
    except CacheWriteFailure as exc:
        typer.echo(f"Refresh failed: {exc}", err=True)
        raise typer.Exit(1)

    if summary["jobCount"] == 0:
        typer.echo("Warning: refresh cached 0 jobs.", err=True)
    typer.echo(json.dumps(summary, indent=2))


async def _read(settings: Settings):
    async with open_pipeline(settings) as pipeline:
        return await pipeline.read()


@app.command()
def read(
    flat: bool = typer.Option(False, "--flat", help="Print a bare JSON array of jobs"),
    limit: int = typer.Option(0, "--limit", help="Print at most N jobs (0 = all)"),
):
    """
    Read jobs like the HTTP endpoint does: cache first, live fetch as fallback.
    """
    settings = _settings()
    try:
        result = asyncio.run(_read(settings))
    except FatalPipelineError as exc:
        typer.echo(json.dumps(exc.to_dict(), indent=2), err=True)
        raise typer.Exit(1)

    body = result.to_flat() if flat else result.to_envelope()
    if limit:
        if flat:
            body = body[:limit]
        else:
            body["jobs"] = body["jobs"][:limit]
    typer.echo(json.dumps(body, indent=2, ensure_ascii=False))


@app.command()
def sources():
    """
    Show the configured sources and where they fetch from.
    """
    settings = _settings()
    urls = {
        "remoteok": [settings.remoteok_url],
        "remotive": [settings.remotive_url],
        "weworkremotely": list(settings.wwr_feed_urls),
        "remoteco": [settings.remoteco_feed_url],
    }
    for cls in SOURCE_CLASSES:
        typer.echo(cls.name)
        for url in urls.get(cls.name, []):
            typer.echo(f"  {url}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """
    Serve GET /remote-jobs over HTTP.
    """
    import uvicorn
    from remotejobs.api import create_app

    settings = _settings()
    uvicorn.run(create_app(settings=settings), host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    app()
