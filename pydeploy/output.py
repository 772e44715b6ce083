"""Console output formatting for the CLI."""

import json
from typing import Any

from rich.console import Console


class OutputFormatter:
    """Prints status messages through rich, or JSON when requested."""

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress informational messages
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(highlight=False)
        self.error_console = Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"✓ {message}", style="green", markup=False)

    def warning(self, message: str) -> None:
        if not self.json_output:
            self.error_console.print(f"⚠ {message}", style="yellow", markup=False)

    def error(self, message: str) -> None:
        self.error_console.print(f"✗ {message}", style="red", markup=False)

    def output_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str))
