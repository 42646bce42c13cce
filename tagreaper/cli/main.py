"""Main CLI entry point using Typer."""

import functools
import json
import logging
import sys
from typing import Optional

import typer
from rich.console import Console

from .. import __version__
from ..deletion.audit import FailureLog
from ..deletion.cleaner import ResourceCleaner
from ..deletion.deleter import init_resource_deleter
from ..deletion.dependency import Ec2DependencyExpander
from ..deletion.reporter import ReportRenderer
from ..discovery.backends import DiscoveryBackends
from ..discovery.discoverer import ResourceDiscoverer
from ..discovery.reader import TagFilterReader
from ..exceptions import ConfigError, TagFilterDecodeError
from ..models.delete_config import DeleteConfig
from ..utils.diagnostics import emit_error
from ..utils.logging import setup_logging
from .config import Config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="tagreaper",
    help="Tag Reaper - delete tagged AWS resources in dependency-safe order",
    add_completion=False,
)

# Standard output carries JSON; human-facing messages go to stderr
console = Console(stderr=True)


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file (default: $TAGREAPER_CONFIG or ./.tagreaper.yaml)"
    ),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="AWS region"),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Discover and order resources without deleting them"),
    ignore_errors: bool = typer.Option(
        False, "--ignore-errors", help="Skip malformed input and keep deleting after failures"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Tag Reaper - delete tagged AWS resources in dependency-safe order."""
    try:
        config = Config.load(config_file)
    except ConfigError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)

    # Override with CLI options; flags only ever switch settings on
    config = config.with_overrides(
        region=region,
        aws_profile=profile,
        dry_run=dry_run or None,
        ignore_errors=ignore_errors or None,
    )

    setup_logging(level="DEBUG" if verbose else config.log_level, verbose=verbose)
    ctx.obj = config


@app.command()
def version():
    """Show version information."""
    typer.echo(f"tagreaper version {__version__}")


@app.command()
def delete(
    ctx: typer.Context,
    delete_file: Optional[str] = typer.Option(
        None, "--delete-file", "-f", help="File of tag filters of resources to delete (default: stdin)"
    ),
    silent: bool = typer.Option(False, "--silent", "-s", help="Suppress JSON output"),
    all_deps: bool = typer.Option(False, "--all-deps", help="Delete all dependencies of all tagged resources"),
    report: bool = typer.Option(
        False, "--report", help="Pretty-print a report of errors encountered while deleting resources"
    ),
):
    """Delete AWS resources matching tag filters.

    Reads a stream of JSON documents shaped like
    {"TagFilters": [{"Key": "env", "Values": ["staging"]}]} and deletes every
    resource matching any document.

    Examples:
        # Delete resources tagged env=staging
        echo '{"TagFilters":[{"Key":"env","Values":["staging"]}]}' | tagreaper delete

        # Preview from a file, including dependencies, with a failure report
        tagreaper --dry-run delete -f filters.json --all-deps --report
    """
    config: Config = ctx.obj

    try:
        stream = open(delete_file, "r") if delete_file else sys.stdin
    except OSError as e:
        console.print(f"✗ Cannot open {delete_file}: {e}", style="bold red")
        raise typer.Exit(code=1)

    try:
        backends = DiscoveryBackends.from_aws(region=config.region, profile=config.aws_profile, timeout=config.timeout)
        expander = None
        if all_deps:
            expander = Ec2DependencyExpander.from_aws(
                region=config.region, profile=config.aws_profile, timeout=config.timeout
            )

        cleaner = ResourceCleaner(
            discoverer=ResourceDiscoverer(backends, resource_types=config.resource_types),
            deleter_factory=functools.partial(
                init_resource_deleter,
                region=config.region,
                aws_profile=config.aws_profile,
                timeout=config.timeout,
            ),
            expander=expander,
        )

        failure_log = FailureLog.for_today(config.log_dir)
        delete_config = DeleteConfig(
            ignore_errors=config.ignore_errors,
            dry_run=config.dry_run,
            logger=failure_log,
        )

        reader = TagFilterReader(stream, ignore_errors=config.ignore_errors)
        result = cleaner.execute(reader, delete_config)

        # Print all failed deletion logs in report format at end of deletion cycle
        if report:
            try:
                typer.echo(ReportRenderer().render(failure_log.read_entries()))
            except OSError as e:
                emit_error(str(e))

        if not silent:
            typer.echo(json.dumps({"DeletedARNs": result.arns}))

    except typer.Exit:
        raise
    except TagFilterDecodeError as e:
        console.print(f"✗ Invalid tag filter input: {e}", style="bold red")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"✗ Error deleting resources: {e}", style="bold red")
        logger.exception("Error in delete command")
        raise typer.Exit(code=2)
    finally:
        if delete_file:
            stream.close()


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
