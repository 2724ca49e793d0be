"""Cache administration CLI commands: statistics, listing, and deletion."""

import asyncio
import uuid

import typer

cache_app = typer.Typer()


@cache_app.command("stats")
def cache_stats(
    days: int = typer.Option(7, "--days", min=1, help="Window for the recent-entries count"),  # noqa: B008
) -> None:
    """Show per-provider cache statistics."""
    asyncio.run(_cache_stats(days))


@cache_app.command("list")
def list_locations(
    provider: str | None = typer.Option(None, "--provider", help="Only entries from this provider"),
    search: str | None = typer.Option(None, "--search", help="Case-insensitive text search"),
    page: int = typer.Option(1, "--page", min=1, help="Page number (1-based)"),  # noqa: B008
    page_size: int = typer.Option(50, "--page-size", min=1, max=1000, help="Entries per page"),  # noqa: B008
    sort: str = typer.Option("last_accessed_at", "--sort", help="Sort field"),
    order: str = typer.Option("desc", "--order", help="asc or desc"),
) -> None:
    """List cached locations."""
    asyncio.run(_list_locations(provider, search, page, page_size, sort, order))


@cache_app.command("delete")
def delete_locations(
    ids: list[str] = typer.Argument(None, help="Location UUIDs to delete"),  # noqa: B008
    provider: str | None = typer.Option(None, "--provider", help="Delete every entry from this provider"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),  # noqa: FBT001
) -> None:
    """Delete cached locations by id, or all entries from one provider."""
    if not ids and not provider:
        typer.echo("Specify location ids or --provider.", err=True)
        raise typer.Exit(code=1)
    try:
        location_ids = [uuid.UUID(value) for value in ids or []]
    except ValueError as e:
        raise typer.BadParameter(f"Invalid location id: {e}") from e
    asyncio.run(_delete_locations(location_ids, provider, yes))


async def _cache_stats(days: int) -> None:
    """Async implementation of cache statistics."""
    from revgeo.cli.runtime import open_service

    async with open_service() as service:
        stats = await service.get_cache_stats(recent_days=days)

    if not stats.providers:
        typer.echo("Cache is empty.")
        return

    for entry in stats.providers:
        typer.echo(f"{entry.provider}:")
        typer.echo(f"  Cached:        {entry.cached_count}")
        typer.echo(f"  Oldest entry:  {entry.oldest_entry}")
        typer.echo(f"  Newest entry:  {entry.newest_entry}")
        typer.echo(f"  Last accessed: {entry.last_accessed}")
    typer.echo(f"\nTotal: {stats.total_count} ({stats.recent_count} in the last {stats.recent_days} days)")


async def _list_locations(
    provider: str | None,
    search: str | None,
    page: int,
    page_size: int,
    sort: str,
    order: str,
) -> None:
    """Async implementation of cache listing."""
    from revgeo.cli.runtime import open_service

    async with open_service() as service:
        listing = await service.list_locations(
            provider_name=provider,
            search_text=search,
            page=page,
            page_size=page_size,
            sort_field=sort,
            sort_order=order,
        )

    for item in listing.items:
        typer.echo(
            f"{item.id}  {item.provider_name:<10}  {item.request_longitude},{item.request_latitude}  "
            f"{item.display_name}  (last accessed {item.last_accessed_at:%Y-%m-%d %H:%M})"
        )
    meta = listing.pagination
    typer.echo(f"\nPage {meta.page} of {meta.total_pages} ({meta.total} entries)")


async def _delete_locations(location_ids: list[uuid.UUID], provider: str | None, yes: bool) -> None:
    """Async implementation of cache deletion."""
    from revgeo.cli.runtime import open_service

    async with open_service() as service:
        if provider:
            location_ids = [*location_ids, *await service.find_ids(provider_name=provider)]
        if not location_ids:
            typer.echo("Nothing to delete.")
            return
        if not yes:
            typer.confirm(f"Delete {len(location_ids)} cached location(s)?", abort=True)
        deleted = await service.delete_locations(location_ids)

    typer.echo(f"Deleted {deleted} cached location(s).")
