import sys
import click
import logging
from click import Command
from pathlib import Path
from typing import Optional, List, Any

from kmpack.cli.config import config
from kmpack.config import load_config
from kmpack.console import Console
from kmpack.errors import BuildError
from kmpack.pipeline import BuildContext, BuildReport, run
from kmpack.projects import find_project_dir

logger = logging.getLogger(__name__)

LOG_FILE = "kmpack.log"


class DefaultGroup(click.Group):
    """A Click group that invokes a default command if no subcommand is matched."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.default_command = kwargs.pop("default_command", None)
        super().__init__(*args, **kwargs)

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, Command | None, list[str]]:
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError:
            if self.default_command:
                new_args = [self.default_command] + args
                return super().resolve_command(ctx, new_args)
            raise


def setup_logging(verbose: bool) -> None:
    """Configures logging for kmpack."""
    if verbose:
        # Progress already goes to the terminal; debug records go to a file.
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            filename=LOG_FILE,
            filemode="a",
        )
        logger.info("Logging initialized at DEBUG level.")
    else:
        logging.basicConfig(
            level=logging.WARNING,
            format="%(name)s - %(levelname)s - %(message)s",
        )


_strict_option = click.option(
    "--strict",
    is_flag=True,
    help="Fail instead of skipping checks whose tools are missing.",
)


@click.group(cls=DefaultGroup, default_command="build", invoke_without_command=True)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help=f"Enable debug logging to a file '{LOG_FILE}'.",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Only print warnings and errors.",
)
@_strict_option
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, strict: bool) -> None:
    """kmpack: validate and package Keyboard Maestro plug-in actions."""
    setup_logging(verbose)
    if ctx.invoked_subcommand is None:
        ctx.invoke(build)


_project_dir_argument = click.argument(
    "project_dir",
    required=False,
    type=click.Path(file_okay=False, path_type=Path),
)


def _group_params(ctx: click.Context) -> dict[str, Any]:
    return ctx.parent.params if ctx.parent else {}


def _console_for(ctx: click.Context) -> Console:
    return Console(quiet=_group_params(ctx).get("quiet", False))


def _strict_for(ctx: click.Context, strict: bool) -> bool:
    # --strict may come before the command name, as in `kmpack --strict`
    return strict or _group_params(ctx).get("strict", False)


def _run_pipeline(
    console: Console, project_dir: Optional[Path], strict: bool, package: bool
) -> BuildReport:
    """Run the pipeline, or print the error and exit with status 1."""
    project = find_project_dir(project_dir)
    # Only an explicit --strict overrides the environment and settings
    build_config = load_config(project, strict=True if strict else None)
    context = BuildContext.create(project, build_config, console=console)

    try:
        report = run(context, package=package)
    except BuildError as e:
        logger.debug("Build of %s failed with %s", project, e.code)
        console.error(e.message)
        sys.exit(1)

    if report.reduced_assurance:
        skipped = ", ".join(o.stage for o in report.skipped)
        console.warning(f"Reduced assurance: skipped {skipped} check(s)")
    return report


@cli.command()
@_project_dir_argument
@_strict_option
@click.pass_context
def build(ctx: click.Context, project_dir: Optional[Path], strict: bool) -> None:
    """Validate the plug-in bundle and zip it up."""
    report = _run_pipeline(
        _console_for(ctx), project_dir, _strict_for(ctx, strict), package=True
    )
    logger.debug("Archive written to %s", report.archive_path)


@cli.command()
@_project_dir_argument
@_strict_option
@click.pass_context
def check(ctx: click.Context, project_dir: Optional[Path], strict: bool) -> None:
    """Validate the plug-in bundle without converting or zipping anything."""
    console = _console_for(ctx)
    _run_pipeline(console, project_dir, _strict_for(ctx, strict), package=False)
    console.header("All checks passed.")


cli.add_command(config)


def main(args: Optional[List[str]] = None) -> None:
    if args is None:
        args = sys.argv[1:]
    cli(args=args)


if __name__ == "__main__":
    main()
