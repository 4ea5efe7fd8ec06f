"""Command line entry point: lint submissions or run a full evaluation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

import typer
from rich.console import Console
from rich.table import Table

from pyedunit import get_version
from pyedunit.core.config import Policy, dump_policy, load_policy
from pyedunit.core.validation import ValidationFailure, strict_validation
from pyedunit.engine import RuleEngine
from pyedunit.grading import Aggregator, ConsoleSink, ResultFileSink, SinkError
from pyedunit.grading.discovery import CheckLoadError, extend_import_path, failed_registry, load_checks
from pyedunit.syntax import SourceUnit, build

app = typer.Typer(help="Check Python submissions against an assignment policy and grade them.")
console = Console()
LOGGER = logging.getLogger("pyedunit.cli")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)


def _resolve_policy(path: Path | None, *, self_test: bool = False) -> Policy:
    if path is None:
        policy = Policy()
    else:
        try:
            strict_validation.validate_yaml_file(path)
            policy = load_policy(path)
        except (ValidationFailure, ValueError) as exc:
            raise typer.BadParameter(str(exc), param_hint="--policy") from exc
    if self_test:
        policy = policy.with_overrides(realistic=False)
    return policy


def _build_units(files: Sequence[Path]) -> List[SourceUnit]:
    for path in files:
        try:
            strict_validation.validate_submission(path)
        except ValidationFailure as exc:
            raise typer.BadParameter(str(exc), param_hint="FILES") from exc
    return [build(path) for path in files]


@app.command()
def lint(
    files: List[Path] = typer.Argument(..., help="Submission files to check."),
    policy_path: Path | None = typer.Option(None, "--policy", "-p", help="Policy YAML (defaults apply when omitted)."),
    fail_on_violation: bool = typer.Option(
        False, "--fail-on-violation", help="Exit non-zero when any violation is found."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Run the rule engine only and show the violations as a table."""
    _configure_logging(verbose)
    policy = _resolve_policy(policy_path)
    report = RuleEngine().evaluate(policy, _build_units(files))

    table = Table(title="Policy Violations", show_header=True)
    table.add_column("Position")
    table.add_column("Rule", justify="center")
    table.add_column("Message")
    for violation in report.violations:
        style = "bold red" if violation.is_cheat else "yellow"
        table.add_row(str(violation.position), violation.rule, violation.message, style=style)
    for diagnostic in report.diagnostics:
        table.add_row(diagnostic.unit, diagnostic.rule, diagnostic.message, style="magenta")
    console.print(table)
    console.print(f"Deduction: {report.deduction} point(s)")

    if report.integrity_violated:
        console.print("[bold red]Cheat indicators detected![/bold red]")
    if fail_on_violation and report.violations:
        raise typer.Exit(code=1)
    if not report.violations:
        console.print("[green]No violations found.[/green]")


@app.command()
def evaluate(
    files: List[Path] = typer.Argument(..., help="Submission files to evaluate."),
    checks: str = typer.Option(
        ...,
        "--checks",
        "-c",
        help="Check registry as module:attribute or path/to/checks.py:attribute (attribute defaults to 'checks').",
    ),
    policy_path: Path | None = typer.Option(None, "--policy", "-p", help="Policy YAML (defaults apply when omitted)."),
    results: Path | None = typer.Option(
        None,
        "--results",
        help="Also write the JSON result record to this path (e.g. /autograder/results/results.json).",
    ),
    seed: int | None = typer.Option(None, "--seed", help="Seed for reproducible random test data."),
    self_test: bool = typer.Option(
        False, "--self-test", help="Evaluate fixture code: cheat rules are not applied."
    ),
    quiet: bool = typer.Option(False, "--quiet", help="Suppress the console protocol (result file is still written)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Run rules and checks, then publish the transcript and score."""
    _configure_logging(verbose)
    policy = _resolve_policy(policy_path, self_test=self_test)
    units = _build_units(files)
    extend_import_path(sorted({path.expanduser().resolve().parent for path in files}))

    try:
        registry = load_checks(checks)
    except CheckLoadError as exc:
        # The submission broke while the checks imported it; grade what is left.
        LOGGER.warning("%s", exc)
        registry = failed_registry(exc)
    except (FileNotFoundError, ImportError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--checks") from exc

    result = Aggregator(seed=seed).run(registry, policy, units)

    sinks = []
    if not quiet:
        sinks.append(ConsoleSink())
    if results is not None:
        sinks.append(ResultFileSink(results, scale=policy.result_scale))
    try:
        for sink in sinks:
            sink.publish(result)
    except SinkError as exc:
        typer.echo(f"[pyedunit] error: {exc}", err=True)
        raise typer.Exit(code=2) from exc


@app.command("init-policy")
def init_policy(
    path: Path = typer.Argument(Path("policy.yaml"), help="Where to write the default policy."),
    strict: bool = typer.Option(False, "--strict", help="Start from a policy with every prohibition enabled."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Write the default policy as YAML."""
    if path.exists() and not force:
        typer.echo(f"{path} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(code=1)
    dump_policy(Policy.strict() if strict else Policy(), path)
    typer.echo(f"Wrote policy to {path}")


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(get_version())


if __name__ == "__main__":
    app()
