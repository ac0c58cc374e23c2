# cli.py
from __future__ import annotations

import json
import sys
import time
from typing import Any, Optional

import click

from pebl_flow.core.addressing import format_address, resolve_all, walk
from pebl_flow.core.collaborators import estimate_remaining
from pebl_flow.core.config.errors import ConfigError
from pebl_flow.core.config.loader import read_document
from pebl_flow.core.config.workflow import load_workflow
from pebl_flow.core.exceptions import PeblException


def parse_seq(value: Optional[str]) -> Optional[list[int]]:
    """'0,1,1' → [0, 1, 1]; an empty value means every task."""
    if value is None:
        return None
    try:
        seq = [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise click.BadParameter(f"expected comma-separated task indices, got {value!r}")
    return seq or None


def echo_progress(current: int, total: Optional[int], start: float, label: str) -> None:
    """ProgressReporter that writes one line per dispatch to stderr."""
    elapsed = time.monotonic() - start
    remaining = estimate_remaining(current, total, elapsed)
    of = f"/{total}" if total else ""
    eta = f", ~{remaining:.1f}s left" if remaining is not None else ""
    click.echo(f"[{label}] {current}{of} ({elapsed:.1f}s elapsed{eta})", err=True)


def _is_leaf(value: Any) -> bool:
    return not isinstance(value, (dict, list, tuple))


@click.group()
def cli():
    """pebl-flow: run sequences of callables, commands and jobs."""


@cli.command()
@click.argument("workflow", type=click.Path(exists=True, dir_okay=False))
@click.option("--local", "local_path", default=None, type=click.Path(exists=True, dir_okay=False), help="Local config overriding the workflow")
@click.option("--loop", default=None, type=int, help="Number of outer loop passes")
@click.option("--seq", default=None, help="Run order as 0-based task indices, e.g. 0,1,1")
@click.option("--n-out", default=None, type=int, help="Number of outputs requested per dispatch")
@click.option("--verbose", is_flag=True, default=False, help="Echo call signatures, outputs and failures")
@click.option("--throw-error/--no-throw-error", default=None, help="Abort on the first task error")
@click.option("--progress", is_flag=True, default=False, help="Report elapsed/remaining time on stderr")
def run(workflow, local_path, loop, seq, n_out, verbose, throw_error, progress):
    """Run a workflow file and print its outputs as JSON."""
    try:
        wf = load_workflow(workflow, local_path=local_path)
        engine = wf.engine(
            loop=loop,
            seq=parse_seq(seq),
            n_out=n_out,
            verbose=verbose or None,
            throw_error=throw_error,
        )
    except ConfigError as e:
        click.echo(f"Invalid workflow: {e}", err=True)
        sys.exit(2)

    if progress or engine.config.progress:
        engine.progress = echo_progress

    try:
        result = engine.run()
    except PeblException as e:
        click.echo(f"Run aborted: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(result.projected(), indent=2, default=str))

    for error in result.errors:
        details = error.details
        click.echo(
            f"task {details.get('task')} ({details.get('task_name')}) "
            f"iteration {details.get('iteration')}: {error.type}: {error.message}",
            err=True,
        )
    if not result.ok:
        sys.exit(1)


@cli.command()
@click.argument("jobfile", type=click.Path(exists=True, dir_okay=False))
@click.argument("pattern", required=False)
def addresses(jobfile, pattern):
    """List the leaf addresses of a job document (optionally filtered by PATTERN)."""
    try:
        job = read_document(jobfile)
    except ConfigError as e:
        click.echo(f"Invalid job file: {e}", err=True)
        sys.exit(2)

    if pattern is None:
        found = [a for a, value in walk(job) if _is_leaf(value)]
    else:
        try:
            found = resolve_all(job, pattern)
        except PeblException as e:
            click.echo(str(e), err=True)
            sys.exit(1)

    for address in found:
        click.echo(format_address(address))


if __name__ == "__main__":
    cli()
