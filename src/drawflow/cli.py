# src/drawflow/cli.py
"""drawflow Command Line Interface.

Entry point for the drawflow CLI tool.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import typer
import yaml
from pydantic import BaseModel, ValidationError

from drawflow import __version__
from drawflow.contracts.draw import DrawConfig, DrawSort
from drawflow.contracts.enums import ExecutionStatus
from drawflow.contracts.errors import (
    DrawSemanticError,
    EntityNotFoundError,
    InfrastructureError,
    InstanceNotReadyError,
    LoggableWorkflowError,
    RowValidationError,
    TriggerError,
)
from drawflow.contracts.workflow import WorkflowJob
from drawflow.core.config import DrawflowSettings, load_settings

__all__ = ["app"]

M = TypeVar("M", bound=BaseModel)

app = typer.Typer(
    name="drawflow",
    help="drawflow: lottery draw workflows compiled to task chains.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"drawflow version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from a .env file.

    Raises:
        typer.Exit: If an explicit env_file doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)
    return load_dotenv(override=False)


@dataclass(frozen=True, slots=True)
class LogFlags:
    """Logging flags given on the command line; they override settings.logging."""

    verbose: bool = False
    json_logs: bool = False


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(False, "--no-dotenv", help="Skip loading .env file."),
    env_file: Path | None = typer.Option(None, "--env-file", help="Path to .env file (skips automatic search)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Output structured JSON logs."),
) -> None:
    """drawflow: lottery draw workflows compiled to task chains."""
    from drawflow.core.logging import configure_logging

    ctx.obj = LogFlags(verbose=verbose, json_logs=json_logs)
    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


def _settings_or_exit(ctx: typer.Context, settings: Path | None) -> DrawflowSettings:
    from drawflow.core.logging import configure_from_settings

    try:
        loaded = load_settings(settings.expanduser() if settings is not None else None)
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    flags = ctx.obj if isinstance(ctx.obj, LogFlags) else LogFlags()
    configure_from_settings(
        loaded.logging,
        level="DEBUG" if flags.verbose else None,
        json_output=True if flags.json_logs else None,
    )
    return loaded


def _model_file_or_exit(path: Path, model: type[M]) -> M:
    from drawflow.cli_helpers import load_structured_file

    try:
        return model.model_validate(load_structured_file(path))
    except yaml.YAMLError as e:
        typer.echo(f"Syntax error in {path}: {e}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo(f"Invalid {model.__name__} in {path}:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None


def _report_workflow_error(e: LoggableWorkflowError) -> None:
    params = ", ".join(f"{k}={v}" for k, v in e.message_params)
    typer.echo(f"Workflow error [{e.message_key}]: {e}" + (f" ({params})" if params else ""), err=True)


SETTINGS_OPTION = typer.Option(None, "--settings", "-s", help="Path to settings YAML file.")


@app.command()
def draw(
    ctx: typer.Context,
    hunt_codes: Path = typer.Option(..., "--hunt-codes", exists=True, dir_okay=False, help="Hunt code CSV."),
    applicants: Path = typer.Option(..., "--applicants", exists=True, dir_okay=False, help="Applicant CSV."),
    sort: Path = typer.Option(..., "--sort", exists=True, dir_okay=False, help="Draw sort (YAML or JSON)."),
    config: Path = typer.Option(..., "--config", exists=True, dir_okay=False, help="Draw config (YAML or JSON)."),
    output_dir: Path = typer.Option(Path("draw-results"), "--output-dir", "-o", help="Directory for result CSVs."),
    workers: int | None = typer.Option(None, "--workers", min=1, help="Threads per round (default from settings)."),
    settings: Path | None = SETTINGS_OPTION,
) -> None:
    """Run a standalone draw over local files and write the result CSVs."""
    from drawflow.cli_helpers import read_csv_rows
    from drawflow.draw.allocation import process_draw
    from drawflow.draw.codec import parse_applicants, parse_hunt_codes
    from drawflow.draw.export import applicants_csv, hunt_codes_csv, metrics_csv
    from drawflow.draw.metrics import generate_draw_metrics

    app_settings = _settings_or_exit(ctx, settings)
    draw_sort = _model_file_or_exit(sort, DrawSort)
    draw_config = _model_file_or_exit(config, DrawConfig)

    try:
        result = process_draw(
            parse_hunt_codes(read_csv_rows(hunt_codes)),
            parse_applicants(read_csv_rows(applicants)),
            draw_sort,
            draw_config,
            max_workers=workers or app_settings.draw.bucket_workers,
        )
    except (RowValidationError, DrawSemanticError) as e:
        typer.echo(f"Draw failed: {e}", err=True)
        raise typer.Exit(1) from None

    metrics = generate_draw_metrics(result)
    output_dir.mkdir(parents=True, exist_ok=True)
    (output_dir / "applicant_results.csv").write_bytes(applicants_csv(result.applicant_results))
    (output_dir / "hunt_code_results.csv").write_bytes(hunt_codes_csv(result.hunt_code_results))
    (output_dir / "draw_metrics.csv").write_bytes(metrics_csv(metrics))

    awarded = sum(1 for a in result.applicant_results if a.choice_awarded is not None)
    typer.echo(f"Draw complete: {awarded} of {len(result.applicant_results)} applicants awarded")
    for metric in metrics:
        typer.echo(f"  {metric.title}: {metric.value}")
    typer.echo(f"Results written to {output_dir}")


@app.command()
def load(
    ctx: typer.Context,
    workflow_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Workflow YAML file."),
    settings: Path | None = SETTINGS_OPTION,
) -> None:
    """Import a workflow instance, its documents and draw settings into the entity store."""
    from drawflow.cli_helpers import WorkflowFile, build_services, import_workflow, load_structured_file

    app_settings = _settings_or_exit(ctx, settings)
    try:
        workflow = WorkflowFile.model_validate(load_structured_file(workflow_file))
    except yaml.YAMLError as e:
        typer.echo(f"Syntax error in {workflow_file}: {e}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo(f"Invalid workflow file {workflow_file}:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    services = build_services(app_settings)
    try:
        instance = import_workflow(services.store, services.blobs, workflow, workflow_file.parent)
    finally:
        services.close()
    typer.echo(f"Loaded workflow instance {instance.id} ({len(workflow.nodes)} nodes, {len(workflow.edges)} edges)")


@app.command("compile")
def compile_instance(
    ctx: typer.Context,
    instance_id: str = typer.Argument(..., help="Workflow instance id."),
    settings: Path | None = SETTINGS_OPTION,
) -> None:
    """Compile a stored workflow instance and print its task-chain definition."""
    from drawflow.cli_helpers import build_services
    from drawflow.core.graph import TaskChainCompiler, WorkflowGraph

    app_settings = _settings_or_exit(ctx, settings)
    services = build_services(app_settings)
    try:
        instance = services.store.get_instance(instance_id)
        nodes = services.store.list_nodes(instance_id)
        graph = WorkflowGraph.from_records(
            nodes,
            services.store.list_edges(instance_id),
            services.store.list_documents_for_nodes([n.id for n in nodes]),
        )
        compiled = TaskChainCompiler(services.registry, services.blobs.uri_for).compile(graph, instance.organization_id)
    except EntityNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except LoggableWorkflowError as e:
        _report_workflow_error(e)
        raise typer.Exit(1) from None
    finally:
        services.close()

    for warning in compiled.warnings:
        typer.secho(f"Warning: {warning.message}: {', '.join(warning.node_ids)}", fg=typer.colors.YELLOW, err=True)
    typer.echo(json.dumps(compiled.definition.model_dump(mode="json"), indent=2))


@app.command()
def build(
    ctx: typer.Context,
    instance_id: str = typer.Argument(..., help="Workflow instance id."),
    trigger: bool = typer.Option(False, "--trigger", "-t", help="Create a job and start an execution."),
    settings: Path | None = SETTINGS_OPTION,
) -> None:
    """Compile, register and await an instance; optionally trigger a job."""
    from drawflow.cli_helpers import build_services
    from drawflow.core.store._helpers import generate_id
    from drawflow.engine.orchestrator import BuildContext

    app_settings = _settings_or_exit(ctx, settings)
    services = build_services(app_settings)
    try:
        instance = services.store.get_instance(instance_id)
        job_id = None
        if trigger:
            job = services.store.create_job(
                WorkflowJob(id=generate_id(), organization_id=instance.organization_id, workflow_instance_id=instance.id)
            )
            job_id = job.id
        build_ctx = BuildContext(
            organization_id=instance.organization_id,
            workflow_id=instance.workflow_id,
            workflow_instance_id=instance.id,
            workflow_job_id=job_id,
        )
        result = services.orchestrator.run(build_ctx)
    except LoggableWorkflowError as e:
        _report_workflow_error(e)
        raise typer.Exit(1) from None
    except (InfrastructureError, InstanceNotReadyError, TriggerError) as e:
        typer.echo(f"Build failed: {e}", err=True)
        raise typer.Exit(1) from None
    finally:
        services.close()

    typer.echo(f"Instance {instance_id} ready ({result.compile.task_count} tasks, definition {result.compile.definition_key})")
    if result.execution_handle is None:
        return

    execution = services.engine.execution(result.execution_handle)
    typer.echo(f"Job {job_id}: execution {execution.status}")
    if execution.status is ExecutionStatus.FAILED:
        typer.echo(f"  Failed at task {execution.failed_task}: {execution.error}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
