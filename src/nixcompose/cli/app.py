# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring commands and shared services."""

from __future__ import annotations

import json
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.table import Table

from ..config import ProjectConfig, load_config
from ..evaluator import EvalRecord, NixEvalJobs
from ..harvest import HarvestProgress, HashHarvester
from ..hashes import HashAlgo, HashFormat, NixHash
from ..pins import FlakeLock
from ..project import build_composer, build_evaluation_job
from .shared import EXIT_CONFIG, CLIError, CLILogger, build_cli_logger, handle_cli_errors

app = typer.Typer(help="Compose Nix development shells and evaluator jobs.", no_args_is_help=True)
hash_app = typer.Typer(help="Parse and convert Nix hashes.", no_args_is_help=True)
lock_app = typer.Typer(help="Inspect flake.lock files.", no_args_is_help=True)
app.add_typer(hash_app, name="hash")
app.add_typer(lock_app, name="lock")

ROOT_OPTION = Annotated[Path, typer.Option("--root", "-r", help="Project root.")]
CONFIG_OPTION = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Configuration file (default: <root>/nixcompose.toml)."),
]
EMOJI_OPTION = Annotated[bool, typer.Option("--emoji/--no-emoji", help="Toggle emoji output.")]
COLOR_OPTION = Annotated[bool, typer.Option("--color/--no-color", help="Toggle coloured output.")]
DEBUG_OPTION = Annotated[bool, typer.Option("--debug", help="Enable debug logging.")]
SYSTEM_ARGUMENT = Annotated[str, typer.Argument(help="Target system, e.g. x86_64-linux.")]
PIN_OPTION = Annotated[str | None, typer.Option("--pin", help="Pin to evaluate (default from config).")]


@dataclass(slots=True)
class CLIState:
    """Per-invocation settings shared by every command."""

    root: Path
    config_path: Path | None
    logger: CLILogger
    _config: ProjectConfig | None = field(default=None, repr=False)

    def config(self) -> ProjectConfig:
        if self._config is None:
            self._config = load_config(self.root, project_config=self.config_path)
            self.logger.debug(f"loaded configuration root={self._config.root}")
        return self._config


@app.callback()
def main(
    ctx: typer.Context,
    root: ROOT_OPTION = Path("."),
    config: CONFIG_OPTION = None,
    emoji: EMOJI_OPTION = True,
    color: COLOR_OPTION = True,
    debug: DEBUG_OPTION = False,
) -> None:
    """Compose Nix development shells and evaluator jobs."""

    logger = build_cli_logger(emoji=emoji, debug=debug, no_color=not color)
    ctx.obj = CLIState(root=root, config_path=config, logger=logger)


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.find_root().obj
    if not isinstance(state, CLIState):
        raise RuntimeError("CLI state was not initialised")
    return state


def parse_option_assignments(values: list[str] | None) -> dict[str, Any]:
    """Parse ``key=value`` pairs; values are read as JSON, falling back to strings."""

    options: dict[str, Any] = {}
    for entry in values or ():
        key, sep, raw = entry.partition("=")
        key = key.strip()
        if not sep or not key:
            raise CLIError(f"invalid option '{entry}', expected key=value", exit_code=EXIT_CONFIG)
        try:
            options[key] = json.loads(raw, parse_constant=_reject_constant)
        except json.JSONDecodeError:
            options[key] = raw
    return options


def _reject_constant(name: str) -> Any:
    raise CLIError(f"option values cannot be {name}", exit_code=EXIT_CONFIG)


@app.command("systems")
def systems_command(ctx: typer.Context) -> None:
    """List the supported systems."""

    state = _state(ctx)
    with handle_cli_errors(state.logger):
        composer = build_composer(state.config())
        for environment in composer.environments:
            state.logger.echo(environment)


@app.command("shell")
def shell_command(
    ctx: typer.Context,
    system: SYSTEM_ARGUMENT,
    as_json: Annotated[bool, typer.Option("--json", help="Emit the shell description as JSON.")] = False,
) -> None:
    """Compose the development shell for SYSTEM."""

    state = _state(ctx)
    with handle_cli_errors(state.logger):
        shell = build_composer(state.config()).compose_shell(system)
    if as_json:
        state.logger.echo(shell.to_json())
        return
    table = Table(title=f"devShell {shell.environment}")
    table.add_column("package")
    table.add_column("version")
    table.add_column("components")
    for package in shell.packages:
        table.add_row(package.name, package.version or "-", ", ".join(package.components()))
    state.logger.console.print(table)
    state.logger.info(f"strictDeps={str(shell.strict_deps).lower()} formatter={shell.formatter}")


@app.command("formatter")
def formatter_command(ctx: typer.Context, system: SYSTEM_ARGUMENT) -> None:
    """Print the formatter package used for SYSTEM."""

    state = _state(ctx)
    with handle_cli_errors(state.logger):
        state.logger.echo(build_composer(state.config()).formatter_for(system))


@app.command("eval-job")
def eval_job_command(
    ctx: typer.Context,
    pin: PIN_OPTION = None,
    preset: Annotated[str | None, typer.Option("--preset", help="Option preset: attr-names or metadata.")] = None,
    option: Annotated[
        list[str] | None,
        typer.Option("--option", "-o", help="Evaluation option key=value (repeatable)."),
    ] = None,
    run: Annotated[bool, typer.Option("--run", help="Run the evaluator instead of printing the command.")] = False,
) -> None:
    """Describe, or run, the evaluator job for a pinned source."""

    state = _state(ctx)
    with handle_cli_errors(state.logger):
        overrides = parse_option_assignments(option)
        job = build_evaluation_job(state.config(), pin=pin, preset=preset, options=overrides)
        state.logger.debug(f"mode={job.mode} command={shlex.join(job.command())}")
        if not run:
            state.logger.echo(shlex.join(job.command()))
            return
        for item in NixEvalJobs().run(job):
            state.logger.echo(_render_result(item))


def _render_result(item: str | EvalRecord) -> str:
    if isinstance(item, str):
        return item
    return json.dumps({"attr": item.attr, "drvPath": item.drv_path, "system": item.system}, sort_keys=True)


@app.command("harvest")
def harvest_command(
    ctx: typer.Context,
    pin: PIN_OPTION = None,
    preset: Annotated[str, typer.Option("--preset", help="Option preset for the evaluation.")] = "metadata",
    output: Annotated[Path | None, typer.Option("--output", help="CSV output path.")] = None,
) -> None:
    """Harvest fixed-output hashes from every derivation of a pinned source."""

    state = _state(ctx)
    with handle_cli_errors(state.logger):
        config = state.config()
        job = build_evaluation_job(config, pin=pin, preset=preset)
        if job.mode == "attr-names":
            raise CLIError("hash harvesting needs derivations; attrNamesOnly must be false", exit_code=EXIT_CONFIG)
        state.logger.section(f"harvest {job.source.name}")

        def report(progress: HarvestProgress, now: float) -> None:
            state.logger.info(progress.progress_line(now))
            state.logger.debug(progress.perf_line())

        harvester = HashHarvester(
            NixEvalJobs(),
            batch_size=config.harvest.batch_size,
            max_concurrent=config.harvest.max_concurrent,
            on_progress=report,
        )
        summary = harvester.harvest(job, output or config.harvest.output)
    state.logger.ok(f"wrote {summary.unique} unique hashes from {summary.derivations} derivations to {summary.output}")


@hash_app.command("convert")
def hash_convert_command(
    ctx: typer.Context,
    value: Annotated[str, typer.Argument(help="Hash in any supported format.")],
    to: Annotated[HashFormat, typer.Option("--to", help="Target format.")] = HashFormat.SRI,
    algo: Annotated[HashAlgo | None, typer.Option("--algo", help="Algorithm for unprefixed input.")] = None,
    show_algo: Annotated[bool, typer.Option("--prefix/--no-prefix", help="Include the algorithm prefix.")] = True,
) -> None:
    """Convert VALUE to another hash format."""

    state = _state(ctx)
    with handle_cli_errors(state.logger):
        parsed = NixHash.parse(value, algo)
    state.logger.echo(parsed.to_string(to, show_algo=show_algo))


@lock_app.command("show")
def lock_show_command(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Path to flake.lock.")],
    input_name: Annotated[str | None, typer.Option("--input", help="Show one root input as a pinned source.")] = None,
) -> None:
    """Summarise the root inputs of a flake.lock."""

    state = _state(ctx)
    with handle_cli_errors(state.logger):
        lock = FlakeLock.load(path)
        if input_name is not None:
            state.logger.echo(lock.pinned_source(input_name).model_dump_json(indent=2, exclude_none=True))
            return
        rows = [(name, *lock.input_node(name)) for name in sorted(lock.node(lock.root).inputs or {})]
    table = Table(title=str(path))
    for column in ("input", "node", "type", "rev", "narHash"):
        table.add_column(column)
    for name, node_name, node in rows:
        locked = node.locked
        source = locked.source if locked is not None else None
        table.add_row(
            name,
            node_name,
            source.type if source is not None else "-",
            getattr(source, "rev", None) or "-",
            locked.nar_hash if locked is not None else "-",
        )
    state.logger.console.print(table)


__all__ = ["app", "hash_app", "lock_app", "parse_option_assignments"]
