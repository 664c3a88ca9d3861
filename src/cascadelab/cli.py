"""
Command-line interface for cascadelab.

Provides commands for creating and deleting Origin/Content records through
either the session (cascading) or bulk statements (not cascading), and for
running the cascade-delete scenarios.
"""

import json
import logging
import sys

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

import click

from cascadelab.config import (
    get_config_path,
    get_database_path,
    get_invalidate_on_bulk,
    load_config,
    set_database_path,
    unset_database_path,
)
from cascadelab.database.errors import ConstraintViolationError
from cascadelab.database.repository import OriginRepository
from cascadelab.database.session import init_database, session_scope
from cascadelab.logging_config import setup_logging
from cascadelab.models import ContentSummary, OriginSummary
from cascadelab.scenarios import SCENARIOS, run_scenarios

logger = logging.getLogger(__name__)

try:
    __version__ = get_version("cascadelab")
except PackageNotFoundError:
    __version__ = "dev"


def _open_database(ctx: click.Context) -> str:
    """Initialize the database selected by --db, config, or default."""
    database_path = get_database_path(ctx.obj.get("db"))
    init_database(database_path)
    return database_path


def _repository(session) -> OriginRepository:
    return OriginRepository(session, invalidate_on_bulk=get_invalidate_on_bulk())


@click.group()
@click.version_option(__version__, prog_name="cascadelab")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--db",
    type=click.Path(dir_okay=False),
    help="Database path (default: ~/.cascadelab/cascadelab.db)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, db: str | None) -> None:
    """cascadelab: Origin/Content cascade-delete sample"""
    setup_logging(verbose=verbose)
    ctx.ensure_object(dict)
    ctx.obj["db"] = db


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the ORIGIN and CONTENT tables."""
    database_path = _open_database(ctx)
    click.echo(f"✓ Database ready at {database_path}")


@cli.command("add-origin")
@click.argument("name")
@click.option(
    "--content", "-c", "contents", multiple=True, help="Content name (repeatable)"
)
@click.pass_context
def add_origin(ctx: click.Context, name: str, contents: tuple[str, ...]) -> None:
    """Create an origin owning the given content records."""
    _open_database(ctx)
    with session_scope() as session:
        origin = _repository(session).create_origin(name, contents)
        summary = OriginSummary.from_origin(origin)

    click.echo(f"✓ Created origin {summary.id} ({summary.name})")
    for content in summary.content:
        click.echo(f"  content {content.id} ({content.name})")


@cli.command("show-origin")
@click.argument("origin_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def show_origin(ctx: click.Context, origin_id: int, as_json: bool) -> None:
    """Show an origin and its content."""
    _open_database(ctx)
    with session_scope() as session:
        origin = _repository(session).find_origin(origin_id)
        summary = OriginSummary.from_origin(origin) if origin else None

    if summary is None:
        click.echo(f"Origin {origin_id} not found", err=True)
        sys.exit(1)

    if as_json:
        click.echo(summary.model_dump_json(indent=2))
        return

    click.echo(f"Origin {summary.id}: {summary.name}")
    click.echo(f"Content ({summary.content_count}):")
    for content in summary.content:
        click.echo(f"  {content.id:>6}  {content.name}")


@cli.command("list-contents")
@click.option("--origin", "origin_id", type=int, help="Only content of this origin")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_contents(ctx: click.Context, origin_id: int | None, as_json: bool) -> None:
    """List content rows with the id of their origin."""
    _open_database(ctx)
    with session_scope() as session:
        rows = [
            ContentSummary.model_validate(c)
            for c in _repository(session).list_contents(origin_id)
        ]

    if as_json:
        click.echo(json.dumps([row.model_dump() for row in rows], indent=2))
        return

    if not rows:
        click.echo("No content found")
        return

    click.echo(f"{'ID':>6}  {'ORIGIN':>6}  NAME")
    for row in rows:
        origin_label = row.origin_id if row.origin_id is not None else "-"
        click.echo(f"{row.id:>6}  {origin_label:>6}  {row.name}")


@cli.command("delete-origin")
@click.argument("origin_id", type=int)
@click.option(
    "--bulk", is_flag=True, help="Use a DELETE statement (no cascade to content)"
)
@click.option(
    "--purge", is_flag=True, help="Bulk-delete content first, then the origin"
)
@click.pass_context
def delete_origin(ctx: click.Context, origin_id: int, bulk: bool, purge: bool) -> None:
    """Delete an origin (cascades to its content unless --bulk)."""
    if bulk and purge:
        raise click.UsageError("--bulk and --purge are mutually exclusive")

    _open_database(ctx)
    try:
        with session_scope() as session:
            repo = _repository(session)
            if bulk:
                deleted = repo.bulk_delete_origin(origin_id)
                message = f"Deleted {deleted} origin row(s) by statement"
            elif purge:
                contents, deleted = repo.purge_origin(origin_id)
                message = f"Purged {deleted} origin row(s) and {contents} content row(s)"
            else:
                origin = repo.find_origin(origin_id)
                deleted = count = 0
                if origin is not None:
                    count = len(origin.content)
                    repo.delete_origin(origin)
                    deleted = 1
                message = f"Deleted origin {origin_id} and {count} content record(s)"
    except ConstraintViolationError as e:
        click.echo(f"✗ {e}", err=True)
        click.echo("Delete the content first, or use --purge.", err=True)
        sys.exit(1)

    if not deleted:
        click.echo(f"Origin {origin_id} not found", err=True)
        sys.exit(1)
    click.echo(f"✓ {message}")


@cli.command("delete-content")
@click.argument("content_id", type=int)
@click.option("--bulk", is_flag=True, help="Use a DELETE statement")
@click.pass_context
def delete_content(ctx: click.Context, content_id: int, bulk: bool) -> None:
    """Delete a content record; its origin is left in place."""
    _open_database(ctx)
    with session_scope() as session:
        repo = _repository(session)
        if bulk:
            deleted = repo.bulk_delete_content(content_id)
        else:
            content = repo.find_content(content_id)
            deleted = 0
            if content is not None:
                repo.delete_content(content)
                deleted = 1

    if not deleted:
        click.echo(f"Content {content_id} not found", err=True)
        sys.exit(1)
    click.echo(f"✓ Deleted content {content_id}")


@cli.group()
def scenarios() -> None:
    """Run the cascade-delete scenarios."""
    pass


@scenarios.command("list")
def scenarios_list() -> None:
    """List available scenarios."""
    width = max(len(name) for name in SCENARIOS)
    for name, scenario in SCENARIOS.items():
        click.echo(f"{name:<{width}}  {scenario.description}")


@scenarios.command("run")
@click.argument("names", nargs=-1)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def scenarios_run(ctx: click.Context, names: tuple[str, ...], as_json: bool) -> None:
    """Run scenarios (all by default) in rolled-back transactions."""
    _open_database(ctx)
    try:
        results = run_scenarios(names or None)
    except KeyError as e:
        raise click.BadParameter(str(e.args[0]), param_hint="NAMES") from e

    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "name": r.name,
                        "passed": r.passed,
                        "observations": r.observations,
                        "error": r.error,
                    }
                    for r in results
                ],
                indent=2,
                default=str,
            )
        )
    else:
        for result in results:
            mark = "✓" if result.passed else "✗"
            click.echo(f"{mark} {result.name}")
            if result.error:
                click.echo(f"    {result.error}")
            for key, (expected, actual) in result.mismatches.items():
                click.echo(f"    {key}: expected {expected!r}, got {actual!r}")

        failed = sum(1 for r in results if not r.passed)
        click.echo(f"\n{len(results) - failed} passed, {failed} failed")

    if any(not r.passed for r in results):
        sys.exit(1)


@cli.group()
def config() -> None:
    """Manage cascadelab configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Show current configuration."""
    config_path = get_config_path()
    click.echo(f"Config file: {config_path}")
    click.echo(f"Database: {get_database_path()}")
    click.echo(f"Invalidate session on bulk delete: {get_invalidate_on_bulk()}")
    logging_settings = load_config().get("logging")
    if logging_settings:
        click.echo(f"Logging: {logging_settings}")


@config.command("set-db")
@click.argument("path", type=click.Path(dir_okay=False))
def config_set_db(path: str) -> None:
    """Set the default database path."""
    set_database_path(path)
    click.echo(f"✓ Default database set to {path}")


@config.command("unset-db")
def config_unset_db() -> None:
    """Remove the default database path."""
    unset_database_path()
    click.echo("✓ Default database cleared")


def main() -> None:
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
