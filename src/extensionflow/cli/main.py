"""
CLI main entry point for extensionflow
"""

import sys
from pathlib import Path

import typer
from dotenv import load_dotenv

from extensionflow.cli.commands import extensions, workflow
from extensionflow.core.utils.logger import get_logger

logger = get_logger(__name__)


def _load_env_file():
    """
    Load .env file from the working directory or next to the entry script
    """
    possible_paths = [Path.cwd() / ".env"]
    if sys.argv:
        main_script = Path(sys.argv[0]).resolve()
        if main_script.is_file():
            possible_paths.append(main_script.parent / ".env")

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path, override=False)
            logger.debug(f"Loaded environment from {env_path}")
            return


# Create Typer app
app = typer.Typer(
    name="extensionflow",
    help="Extension orchestration and workflow execution CLI",
    add_completion=False,
)


@app.callback(invoke_without_command=True)
def cli_callback(ctx: typer.Context):
    _load_env_file()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


app.add_typer(extensions.app, name="extensions", help="Validate, discover and search extension manifests")
app.add_typer(workflow.app, name="workflow", help="Validate and run workflows")


@app.command()
def version():
    """Show version information."""
    from extensionflow import __version__
    typer.echo(f"extensionflow version {__version__}")


if __name__ == "__main__":
    app()
