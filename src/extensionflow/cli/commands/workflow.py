"""
Workflow command for validating and running workflow definitions
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Coroutine, Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from extensionflow.core.errors import ValidationError
from extensionflow.core.extensions import ExtensionLifecycleManager, ExtensionRegistry, ExtensionSource
from extensionflow.core.utils.logger import get_logger
from extensionflow.core.workflow import ExecutionStatus, WorkflowDefinition, WorkflowEngine, WorkflowExecutionResult
from extensionflow.extensions import get_builtin_extensions

logger = get_logger(__name__)

app = typer.Typer(name="workflow", help="Validate and run workflows")
console = Console()


def run_async_safe(coro: Coroutine[Any, Any, Any]) -> Any:
    """
    Run a coroutine from synchronous CLI code

    If an event loop is already running in this thread (e.g. the command is
    invoked from an async test), the coroutine runs on a fresh loop in a
    worker thread instead.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    import concurrent.futures

    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


def _load_workflow(workflow_path: Path) -> WorkflowDefinition:
    try:
        data = json.loads(workflow_path.read_text(encoding="utf-8"))
    except OSError as e:
        console.print(f"[red]Cannot read workflow file:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {workflow_path}:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    try:
        return WorkflowDefinition.from_dict(data)
    except ValidationError as e:
        console.print(f"[red]Invalid workflow:[/red] {escape(e.message)}")
        raise typer.Exit(1)


async def _run_with_builtins(
    workflow: WorkflowDefinition,
    inputs: Dict[str, Any],
    user_id: Optional[str],
) -> WorkflowExecutionResult:
    registry = ExtensionRegistry()
    manager = ExtensionLifecycleManager()
    for extension in get_builtin_extensions():
        registry.register(extension.get_manifest(), source=ExtensionSource.BUILTIN)
        await manager.load_extension(extension)

    try:
        engine = WorkflowEngine(executor=manager, retention_seconds=0)
        return await engine.execute_workflow(workflow, inputs, user_id=user_id)
    finally:
        for instance in manager.get_all_extensions():
            try:
                await manager.unload_extension(instance.manifest.id)
            except Exception as e:
                logger.warning(f"Failed to unload extension {instance.manifest.id}: {e}")


def _print_result_table(result: WorkflowExecutionResult) -> None:
    table = Table(title=f"Workflow {result.workflow_id} ({result.status.value}, {result.duration}ms)")
    table.add_column("Step", style="cyan")
    table.add_column("Status")
    table.add_column("Retries", justify="right")
    table.add_column("Duration (ms)", justify="right")
    table.add_column("Output / Error")

    status_styles = {"completed": "green", "failed": "red", "skipped": "yellow"}
    for step_result in result.step_results:
        style = status_styles.get(step_result.status.value, "white")
        detail = step_result.error.message if step_result.error else json.dumps(step_result.output, default=str)
        table.add_row(
            step_result.step_id,
            f"[{style}]{step_result.status.value}[/{style}]",
            str(step_result.retries),
            str(step_result.duration if step_result.duration is not None else ""),
            escape(detail),
        )
    console.print(table)

    for error in result.errors:
        console.print(f"[red]{error.code}[/red] {error.step_id or '-'}: {escape(error.message)}")


@app.command()
def validate(
    workflow_path: Path = typer.Argument(..., help="Path to a workflow JSON file"),
):
    """
    Validate a workflow definition without running it
    """
    workflow = _load_workflow(workflow_path)
    try:
        WorkflowEngine().validate_workflow(workflow)
    except ValidationError as e:
        console.print(f"[red]Invalid workflow:[/red] {escape(e.message)}")
        raise typer.Exit(1)

    console.print(f"[green]Valid workflow:[/green] {workflow.id} ({len(workflow.steps)} steps)")


@app.command()
def run(
    workflow_path: Path = typer.Argument(..., help="Path to a workflow JSON file"),
    inputs: Optional[str] = typer.Option(None, "--inputs", "-i", help="Initial variables as a JSON object"),
    output: str = typer.Option("json", "--output", "-o", help="Output format: json or table"),
    user_id: Optional[str] = typer.Option(None, "--user-id", help="User the run is attributed to"),
):
    """
    Run a workflow against the built-in extensions

    Exits with code 1 if the run does not complete.
    """
    if output not in ("json", "table"):
        console.print(f"[red]Unknown output format '{output}'[/red] (expected: json, table)")
        raise typer.Exit(1)

    variables: Dict[str, Any] = {}
    if inputs:
        try:
            variables = json.loads(inputs)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid --inputs JSON:[/red] {escape(str(e))}")
            raise typer.Exit(1)
        if not isinstance(variables, dict):
            console.print("[red]--inputs must be a JSON object[/red]")
            raise typer.Exit(1)

    workflow = _load_workflow(workflow_path)
    try:
        result = run_async_safe(_run_with_builtins(workflow, variables, user_id))
    except ValidationError as e:
        console.print(f"[red]Invalid workflow:[/red] {escape(e.message)}")
        raise typer.Exit(1)

    if output == "json":
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        _print_result_table(result)

    if result.status != ExecutionStatus.COMPLETED:
        raise typer.Exit(1)
