"""
latexmk-runner CLI

Builds a LaTeX file to PDF in an isolated workspace.

Examples:\n

    latexmk-runner build paper.tex out/paper.pdf                  # Single pass

    latexmk-runner build paper.tex out/paper.pdf --passes 2       # Resolve cross-references

    latexmk-runner build paper.tex paper.pdf -d refs.bib          # Stage a bibliography

    latexmk-runner build report.tex r.pdf -d data/v2.json -r data/v2.json=data.json
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from latexmk_runner.building import (
    ValidationError,
    build_sync,
    load_options_file,
    resolve_options,
)
from latexmk_runner.building.logger import log_build_result, setup_building_logger
from latexmk_runner.utils.timestamp import now

load_dotenv()
LOGS_PATH = Path(os.getenv("LATEXMK_LOGS_PATH", "outs/logs"))


def parse_renames(renames: List[str]) -> Dict[str, str]:
    """Turn ORIGINAL=NAME pairs into a mapping."""
    mapping = {}
    for item in renames:
        original, sep, name = item.partition("=")
        if not sep or not original or not name:
            raise typer.BadParameter(f"Expected ORIGINAL=NAME, got '{item}'", param_hint="--rename")
        mapping[original] = name
    return mapping


app = typer.Typer(
    help="Build LaTeX documents with latexmk in a throwaway workspace",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("build")
def build_command(
    input_path: Annotated[Path, typer.Argument(help="LaTeX source file")],
    output_path: Annotated[Path, typer.Argument(help="Destination for the built PDF")],
    passes: Annotated[
        Optional[int],
        typer.Option("--passes", "-p", help="Number of latexmk invocations (default: 1)"),
    ] = None,
    args: Annotated[
        Optional[List[str]],
        typer.Option("--arg", "-a", help="Extra latexmk argument (repeatable)"),
    ] = None,
    override_args: Annotated[
        bool,
        typer.Option("--override-args", help="Use only --arg values, dropping the default arguments"),
    ] = False,
    ignore_extension: Annotated[
        bool,
        typer.Option("--ignore-extension", help="Skip the .tex extension check"),
    ] = False,
    dependencies: Annotated[
        Optional[List[Path]],
        typer.Option("--dependency", "-d", help="File to copy next to the input (repeatable)"),
    ] = None,
    renames: Annotated[
        Optional[List[str]],
        typer.Option("--rename", "-r", help="ORIGINAL=NAME name for a dependency (repeatable)"),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML file with build options"),
    ] = None,
    command: Annotated[
        Optional[str],
        typer.Option("--command", help="Build executable (default: $LATEXMK_COMMAND or latexmk)"),
    ] = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Per-pass timeout in seconds"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show latexmk output and debug messages"),
    ] = False,
):
    """
    Build a LaTeX file to PDF.

    Options given on the command line override those from --config.

    Examples:\n

        $ latexmk-runner build paper.tex paper.pdf --passes 2

        $ latexmk-runner build paper.tex paper.pdf --arg -xelatex --override-args
    """
    log_dir = LOGS_PATH / f"build_{now()}"
    setup_building_logger(log_dir, verbose=verbose)

    try:
        options = load_options_file(config) if config else {}
        if passes is not None:
            options["passes"] = passes
        if args:
            options["args"] = list(args)
        if override_args:
            options["override_args"] = True
        if ignore_extension:
            options["ignore_extension_check"] = True
        if dependencies:
            options["dependencies"] = [str(dep) for dep in dependencies]
        if renames:
            options["dependency_renames"] = {
                **(options.get("dependency_renames") or {}),
                **parse_renames(renames),
            }
        if command:
            options["command"] = command
        if timeout is not None:
            options["timeout_s"] = timeout
        resolved = resolve_options(options)
    except ValidationError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"\nBuilding: {input_path}", fg=typer.colors.BLUE, bold=True)
    typer.echo(f"Passes: {resolved.passes}")
    typer.echo(f"Arguments: {' '.join(resolved.args)}")
    typer.echo("")

    result = build_sync(input_path, output_path, resolved)
    log_build_result(input_path.name, result, verbose=verbose)

    typer.echo("")
    if result.success:
        typer.secho("✓ Build succeeded", fg=typer.colors.GREEN, bold=True)
        typer.echo(f"  PDF: {result.output_path}")
        if result.page_count is not None:
            typer.echo(f"  Pages: {result.page_count}")
        typer.echo(f"  Warnings: {len(result.warnings)}")
    else:
        typer.secho(f"✗ Build failed during {result.error.stage}", fg=typer.colors.RED, bold=True)
        for line in str(result.error).splitlines()[:10]:
            typer.secho(f"  {line}", fg=typer.colors.RED)

    typer.echo(f"  Log: {log_dir / 'build.log'}")
    typer.echo("")

    raise typer.Exit(code=0 if result.success else 1)


if __name__ == "__main__":
    app()
