"""Reverse geocoding CLI commands: single, batch from CSV, reconcile, and provider listing."""

import asyncio
import csv
from pathlib import Path

import typer

from revgeo.lib.geocoder.base import GeocodingError, GeoPoint, PlaceResult

geocode_app = typer.Typer()


@geocode_app.command("reverse")
def reverse_geocode(
    lon: float = typer.Option(..., "--lon", help="Longitude (-180 to 180)"),  # noqa: B008
    lat: float = typer.Option(..., "--lat", help="Latitude (-90 to 90)"),  # noqa: B008
) -> None:
    """Resolve one coordinate, cache first."""
    asyncio.run(_reverse_geocode(_point(lon, lat)))


@geocode_app.command("batch")
def batch_geocode(
    file: Path = typer.Argument(..., help="CSV file of longitude,latitude rows", exists=True),  # noqa: B008
) -> None:
    """Resolve every coordinate in a CSV file with one batch cache lookup."""
    points = _read_points(file)
    asyncio.run(_batch_geocode(points))


@geocode_app.command("reconcile")
def reconcile(
    provider: str = typer.Argument(..., help="Provider name (nominatim, googlemaps, mapbox, photon)"),
    lon: float = typer.Option(..., "--lon", help="Longitude (-180 to 180)"),  # noqa: B008
    lat: float = typer.Option(..., "--lat", help="Latitude (-90 to 90)"),  # noqa: B008
) -> None:
    """Re-resolve a coordinate with one named provider and cache the result."""
    asyncio.run(_reconcile(provider, _point(lon, lat)))


@geocode_app.command("providers")
def list_providers() -> None:
    """List providers that are enabled right now."""
    from revgeo.lib.geocoder.failover import GeocodingProviderFactory

    enabled = GeocodingProviderFactory().list_enabled_providers()
    if not enabled:
        typer.echo("No providers enabled.")
        return
    for name in enabled:
        typer.echo(name)


def _point(lon: float, lat: float) -> GeoPoint:
    try:
        return GeoPoint(lon, lat)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def _read_points(path: Path) -> list[GeoPoint]:
    """Read ``longitude,latitude`` rows, skipping blank lines and a header row."""
    points: list[GeoPoint] = []
    with path.open(newline="", encoding="utf-8") as f:
        for line_no, row in enumerate(csv.reader(f), start=1):
            if not row or not "".join(row).strip():
                continue
            if len(row) < 2:
                typer.echo(f"Line {line_no}: expected longitude,latitude", err=True)
                raise typer.Exit(code=1)
            try:
                lon, lat = float(row[0]), float(row[1])
            except ValueError:
                if line_no == 1:
                    continue
                typer.echo(f"Line {line_no}: invalid coordinate {row[0]!r},{row[1]!r}", err=True)
                raise typer.Exit(code=1) from None
            try:
                points.append(GeoPoint(lon, lat))
            except ValueError as e:
                typer.echo(f"Line {line_no}: {e}", err=True)
                raise typer.Exit(code=1) from e
    return points


def _describe(result: PlaceResult) -> str:
    if result.ok:
        source = "cache" if result.cached else "provider"
        return f"{result.display_name} [{result.provider_name}, {source}]"
    if result.error is not None:
        return f"{result.status.value}: {result.error}"
    return result.status.value


async def _reverse_geocode(point: GeoPoint) -> None:
    """Async implementation of single reverse geocoding."""
    from revgeo.cli.runtime import open_service

    async with open_service() as service:
        result = await service.reverse_geocode(point)

    typer.echo(f"{point}: {_describe(result)}")
    if result.error is not None:
        raise typer.Exit(code=1)


async def _batch_geocode(points: list[GeoPoint]) -> None:
    """Async implementation of batch reverse geocoding."""
    from revgeo.cli.runtime import open_service

    async with open_service() as service:
        results = await service.reverse_geocode_batch(points)

    for point, result in results.items():
        typer.echo(f"{point}: {_describe(result)}")

    resolved = sum(1 for r in results.values() if r.ok)
    cached = sum(1 for r in results.values() if r.cached)
    failed = sum(1 for r in results.values() if r.error is not None)
    typer.echo("\nBatch complete:")
    typer.echo(f"  Distinct points: {len(results)}")
    typer.echo(f"  Resolved:        {resolved}")
    typer.echo(f"  Cache hits:      {cached}")
    typer.echo(f"  Not found:       {len(results) - resolved - failed}")
    typer.echo(f"  Failed:          {failed}")


async def _reconcile(provider: str, point: GeoPoint) -> None:
    """Async implementation of single-provider reconciliation."""
    from revgeo.cli.runtime import open_service

    async with open_service() as service:
        try:
            result = await service.reconcile_with_provider(provider, point)
        except GeocodingError as e:
            typer.echo(f"Reconcile failed ({e.kind.value}): {e}", err=True)
            raise typer.Exit(code=1) from e

    typer.echo(f"{point}: {_describe(result)}")
