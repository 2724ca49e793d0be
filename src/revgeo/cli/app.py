"""Typer CLI root application."""

import typer

from revgeo.core.config import get_settings
from revgeo.core.logging import setup_logging

app = typer.Typer(name="revgeo", help="Reverse geocoding cache and provider failover CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from revgeo.cli.cache_cmd import cache_app
    from revgeo.cli.geocode_cmd import geocode_app

    app.add_typer(geocode_app, name="geocode", help="Reverse geocoding commands")
    app.add_typer(cache_app, name="cache", help="Cache administration commands")


_register_subcommands()
