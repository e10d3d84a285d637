"""Human-readable progress output for kmpack.

Progress goes to stdout and errors to stderr. click strips the colors whenever
the stream is not a terminal, so piped output reads as plain text.
"""

import click


class Console:
    """Prints the four kinds of progress line plus the final error line."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def header(self, message: str) -> None:
        if not self.quiet:
            click.echo()
            click.secho(message, fg="white", bold=True)

    def debug(self, message: str) -> None:
        if not self.quiet:
            click.secho(message, fg="green")

    def success(self, message: str) -> None:
        if not self.quiet:
            click.secho(f"✓ {message}", fg="bright_green")

    def warning(self, message: str) -> None:
        click.secho(f"! {message}", fg="yellow")

    def error(self, message: str) -> None:
        prefix = click.style("Error", fg="red", underline=True)
        click.echo(f"{prefix}: {message}", err=True)
