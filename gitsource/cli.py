"""
Command-line interface for the git content source.

Provides commands for syncing mirrors and importing them into a
content graph.
"""

import json
import logging
import sys
from pathlib import Path

import click

from gitsource import __version__
from gitsource.utils.logging_config import setup_logging
from gitsource.utils.validation import validate_url


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
@click.option(
    "--log-file",
    type=click.Path(),
    help="Path to log file"
)
@click.pass_context
def cli(ctx, verbose, log_file):
    """
    Git Content Source

    Mirror remote git repositories and import their files as
    content nodes.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    log_level = "DEBUG" if verbose else "INFO"
    setup_logging(level=log_level, log_file=Path(log_file) if log_file else None)


def apply_config_verbosity(ctx, config) -> None:
    """Switch to debug logging when the loaded configuration asks for it."""
    if config.verbose and not ctx.obj.get("verbose"):
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
@click.argument("remote")
@click.option("--branch", "-b", help="Branch to check out (default: remote HEAD)")
@click.option("--target", "-t", help="Mirror directory name inside the base dir")
@click.option("--base-dir", type=click.Path(), help="Directory holding mirrors")
@click.option(
    "--pattern", "-p",
    multiple=True,
    default=["**/*"],
    show_default=True,
    help="Glob pattern of files to list (repeatable)"
)
@click.pass_context
def sync(ctx, remote, branch, target, base_dir, pattern):
    """
    Clone or refresh the mirror of REMOTE and list its files.

    Examples:

        gitsource sync https://github.com/user/docs

        gitsource sync git@github.com:user/docs.git -b main -p "**/*.md"
    """
    is_valid, error = validate_url(remote)
    if not is_valid:
        click.echo(f"Error: {error}", err=True)
        sys.exit(1)

    from gitsource.core.config import Config, SourceOptions
    from gitsource.core.exceptions import GitSourceError
    from gitsource.sync.stage import SyncStage

    config = Config.load_from_env()
    apply_config_verbosity(ctx, config)

    try:
        options = SourceOptions(
            remote=remote,
            branch=branch,
            target=target,
            base_dir=base_dir,
            pattern=list(pattern),
        )
        stage = SyncStage(config, options)
        result = stage.synchronizer.sync(
            stage.local_path,
            options.to_remote(clone_depth=config.sync.clone_depth),
            options.pattern,
        )
    except GitSourceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not result.ok:
        click.echo(f"Error: {result.error}", err=True)
        sys.exit(2)

    click.echo(f"Mirror: {result.local_path}")
    click.echo(f"Branch: {result.branch} ({(result.commit_hash or '')[:8]})")
    if result.web_link:
        click.echo(f"Web:    {result.web_link}")
    click.echo(f"Files:  {len(result.files)}")
    for file in result.files:
        click.echo(f"  {file}")


@cli.command(name="import")
@click.argument("remote", required=False)
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON configuration file with a list of sources"
)
@click.option("--branch", "-b", help="Branch to check out (default: remote HEAD)")
@click.option("--target", "-t", help="Mirror directory name inside the base dir")
@click.option("--base-dir", type=click.Path(), help="Directory holding mirrors")
@click.option("--path-prefix", help="Prefix for all route paths")
@click.option("--type-name", default="GitNode", show_default=True, help="Collection name")
@click.option(
    "--pattern", "-p",
    multiple=True,
    default=["**/*"],
    show_default=True,
    help="Glob pattern of files to import (repeatable)"
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    help="Write the content graph to this JSON file"
)
@click.option(
    "--include-content",
    is_flag=True,
    help="Include raw file content in the JSON output"
)
@click.pass_context
def import_(ctx, remote, config_path, branch, target, base_dir, path_prefix,
            type_name, pattern, output, include_content):
    """
    Import REMOTE, or every source of a configuration file.

    Examples:

        gitsource import https://github.com/user/docs -p "**/*.md" -o graph.json

        gitsource import --config gitsource.json
    """
    from gitsource.core.config import Config, SourceOptions
    from gitsource.core.exceptions import GitSourceError
    from gitsource.content.store import ContentStore
    from gitsource.engine import load_sources

    if config_path:
        config = Config.load_from_file(config_path)
        Config.load_from_env()
        sources = Config.sources()
    elif remote:
        config = Config.load_from_env()
        try:
            sources = [SourceOptions(
                remote=remote,
                branch=branch,
                target=target,
                base_dir=base_dir,
                path_prefix=path_prefix,
                type_name=type_name,
                pattern=list(pattern),
            )]
        except GitSourceError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
    else:
        click.echo("Error: give a REMOTE or --config", err=True)
        sys.exit(1)

    apply_config_verbosity(ctx, config)

    if not sources:
        click.echo("Error: no sources configured", err=True)
        sys.exit(1)

    store = ContentStore(name="gitsource")
    try:
        states = load_sources(sources, store=store, config=config)
    except GitSourceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("=" * 60)
    click.echo("IMPORT COMPLETE")
    click.echo("=" * 60)
    for state in states:
        status = "ok" if state.succeeded else f"failed: {state.failure}"
        click.echo(f"{state.source}: {status}")
        for name, result in state.stage_results.items():
            click.echo(
                f"  {name}: {result.status.value} ({result.elapsed:.2f}s) "
                f"{json.dumps(result.metrics, default=str)}"
            )

    stats = store.get_statistics()
    click.echo(f"Nodes: {stats['node_count']}  Edges: {stats['edge_count']}")
    click.echo("=" * 60)

    if output:
        store.save(Path(output), include_content=include_content)
        click.echo(f"\nContent graph saved to: {output}")

    if not all(state.succeeded for state in states):
        sys.exit(1)


@cli.command()
@click.option(
    "--output", "-o",
    type=click.Path(),
    default="gitsource.json",
    help="Output path for configuration file"
)
def init(output):
    """
    Initialize configuration file.

    Creates a default configuration file that can be customized.
    """
    from gitsource.core.config import Config

    Config.save_to_file(output)
    click.echo(f"Configuration saved to: {output}")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
