"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from covgate.models.finding import Severity

if TYPE_CHECKING:
    from covgate.config import ThresholdConfig
    from covgate.models.finding import Finding

console = Console()

_MAX_MESSAGE_LENGTH = 100

_SEVERITY_STYLES: dict[Severity, str] = {
    Severity.ERROR: "red",
    Severity.WARN: "yellow",
    Severity.OFF: "dim",
}


class CLIReporter:
    """Rich terminal output for coverage findings."""

    def __init__(self, output: Console | None = None) -> None:
        self.console = output or console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    def print_findings(self, findings: list[Finding]) -> None:
        """Print a table of findings followed by a one-line summary."""
        if not findings:
            self.print_success("All checked files meet their coverage thresholds")
            return

        table = Table(title=f"Coverage Findings ({len(findings)})", title_style="bold yellow")
        table.add_column("Severity", justify="center")
        table.add_column("File", style="bold")
        table.add_column("Line", justify="right")
        table.add_column("Kind")
        table.add_column("Message")

        for finding in findings:
            color = _SEVERITY_STYLES.get(finding.severity, "white")
            message = finding.message
            if len(message) > _MAX_MESSAGE_LENGTH:
                message = message[: _MAX_MESSAGE_LENGTH - 3] + "..."
            table.add_row(
                f"[{color}]{finding.severity.value}[/{color}]",
                self._strip_workdir(finding.location.file_path),
                str(finding.location.line),
                finding.kind.value,
                message,
            )

        self.console.print(table)

        errors = sum(1 for f in findings if f.severity is Severity.ERROR)
        warnings = sum(1 for f in findings if f.severity is Severity.WARN)
        summary_color = "red" if errors else "yellow"
        self.console.print(
            f"\n[{summary_color}]Errors: {errors} | Warnings: {warnings}[/{summary_color}]"
        )

    def print_config(self, config: ThresholdConfig) -> None:
        """Print the effective configuration as a key/value table."""
        table = Table(title="Coverage Configuration", title_style="bold cyan")
        table.add_column("Option", style="bold")
        table.add_column("Value")
        for key, value in config.to_options().items():
            table.add_row(key, str(value))
        self.console.print(table)

    def _strip_workdir(self, file_path: str) -> str:
        """Show paths relative to the current directory when possible."""
        try:
            return str(Path(file_path).relative_to(Path.cwd()))
        except ValueError:
            return file_path


# Singleton instance for easy import
reporter = CLIReporter()
