"""Click CLI group: extract, index and lookup commands."""

from __future__ import annotations

import json
from pathlib import Path

import click

from depfixer.brokentarget import extract_from_file
from depfixer.config import get_settings, validate_settings
from depfixer.errors import DepfixerError
from depfixer.logging import bind_context, clear_context, configure_logging
from depfixer.repo import PROFILES, IndexerDriver, IndexRun


@click.group()
@click.option("--log-level", type=str, default=None, help="Override LOG_LEVEL.")
def cli(log_level: str | None) -> None:
    """Bazel dependency fixer: broken target extraction and class index."""
    settings = get_settings()
    configure_logging(log_level or settings.log_level, app_env=settings.app_env)
    try:
        validate_settings(settings)
    except DepfixerError as exc:
        raise click.ClickException(str(exc)) from exc


def _run_driver(
    directory: Path,
    profile_name: str,
    persistence_root: Path | None,
    workspace_name: str | None,
    workspace_root: Path | None,
) -> IndexRun:
    profile = PROFILES[profile_name]
    driver = IndexerDriver(
        directory,
        profile,
        persistence_root=persistence_root,
        workspace_name=workspace_name,
        workspace_root=workspace_root,
    )
    bind_context(workspace=driver.workspace_name, indexer=profile.name)
    try:
        return driver.run()
    except DepfixerError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        driver.wait_for_compaction()
        clear_context()


_profile_option = click.option(
    "--profile",
    "profile_name",
    type=click.Choice(sorted(PROFILES)),
    default="bazel-out",
    show_default=True,
    help="Archive tree layout.",
)
_persistence_option = click.option(
    "--persistence-root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Where index files are kept (default: DEPFIXER_PERSISTENCE_ROOT).",
)
_workspace_name_option = click.option(
    "--workspace-name",
    type=str,
    default=None,
    help="Index namespace (default: DEPFIXER_WORKSPACE_NAME or workspace dir name).",
)
_workspace_root_option = click.option(
    "--workspace-root",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=None,
    help="Workspace checkout (default: DEPFIXER_WORKSPACE_ROOT).",
)


@cli.command()
@click.argument("log_file", type=click.Path(path_type=Path, dir_okay=False, exists=True))
@_workspace_root_option
@click.option(
    "--external-root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Bazel external repositories directory (default: DEPFIXER_EXTERNAL_ROOT).",
)
@click.option("--json", "json_output", is_flag=True, help="Print one JSON object per target.")
def extract(
    log_file: Path,
    workspace_root: Path | None,
    external_root: Path | None,
    json_output: bool,
) -> None:
    """List the targets that failed in a build log."""
    settings = get_settings()
    root = (workspace_root or Path(settings.workspace_root)).expanduser()
    external = external_root or Path(settings.external_root or root / "external")
    try:
        targets = extract_from_file(log_file, root, external.expanduser())
    except DepfixerError as exc:
        raise click.ClickException(str(exc)) from exc

    for target in targets:
        if json_output:
            click.echo(json.dumps(target.as_dict(), sort_keys=True))
        else:
            click.echo(
                f"{target.target_label} kind={target.failure_kind.value} "
                f"repo={target.origin_repo} segment={target.segment_start}:{target.segment_end}"
            )


@cli.command()
@click.argument("directory", type=click.Path(path_type=Path, file_okay=False, exists=True))
@_profile_option
@_persistence_option
@_workspace_name_option
@_workspace_root_option
@click.option("--json", "json_output", is_flag=True, help="Print full JSON run summary.")
def index(
    directory: Path,
    profile_name: str,
    persistence_root: Path | None,
    workspace_name: str | None,
    workspace_root: Path | None,
    json_output: bool,
) -> None:
    """Bring the class index of DIRECTORY up to date."""
    run = _run_driver(directory, profile_name, persistence_root, workspace_name, workspace_root)
    payload = run.summary()
    if json_output:
        click.echo(json.dumps(payload, indent=2, sort_keys=True))
        return
    click.echo(
        f"added: {payload['added']} removed: {payload['removed']} modified: {payload['modified']}"
    )
    click.echo(f"indexed: {payload['indexed']} saved: {payload['saved']}")
    click.echo(f"classes: {payload['classes']} targets: {payload['targets']}")
    for item in run.timings:
        click.echo(f"  {item.phase}: {item.duration_s:.3f}s")


@cli.command()
@click.argument("directory", type=click.Path(path_type=Path, file_okay=False, exists=True))
@click.argument("class_names", nargs=-1, required=True)
@_profile_option
@_persistence_option
@_workspace_name_option
@_workspace_root_option
def lookup(
    directory: Path,
    class_names: tuple[str, ...],
    profile_name: str,
    persistence_root: Path | None,
    workspace_name: str | None,
    workspace_root: Path | None,
) -> None:
    """Print the target owning each class, indexing DIRECTORY first."""
    run = _run_driver(directory, profile_name, persistence_root, workspace_name, workspace_root)
    for class_name in class_names:
        target = run.cache.target_of(class_name)
        click.echo(f"{class_name} {target or '-'}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
