"""Interactive prompts for the setup wizard.

All input goes through ``click`` so that Ctrl+C and Ctrl+D surface as
``click.Abort`` and invalid answers are re-prompted. Choices are rendered as
numbered ``rich`` tables.
"""

from typing import Any, Callable, List, Optional, Sequence, Tuple

import click
from rich.console import Console
from rich.table import Table

from .errors import SetupError
from .models import NeonOrganization, ReservedIpInfo
from .steps.base import NEW_CHOICE, Step, parse_step_selection

Option = Tuple[str, str]


class Prompter:
    def __init__(self, console: Console):
        self.console = console

    def text(
        self,
        message: str,
        default: Optional[str] = None,
        validate: Optional[Callable[[str], Any]] = None,
    ) -> Any:
        return click.prompt(message, default=default or None, value_proc=validate)

    def secret(
        self,
        message: str,
        default: Optional[str] = None,
        validate: Optional[Callable[[str], Any]] = None,
    ) -> Any:
        """Hidden input; an existing value is kept when Enter is pressed."""
        if default:
            message = f"{message} (Enter keeps the saved value)"
        return click.prompt(
            message,
            default=default or None,
            hide_input=True,
            show_default=False,
            value_proc=validate,
        )

    def confirm(self, message: str, default: bool = True) -> bool:
        return click.confirm(message, default=default)

    def info(self, message: str):
        self.console.print(f"[blue]{message}[/blue]")

    def show_table(self, title: str, headers: Sequence[str], rows: Sequence[Sequence[str]]):
        table = Table(title=title, title_justify="left")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*[str(cell) for cell in row])
        self.console.print(table)

    def select(self, message: str, options: Sequence[Option], default: Optional[str] = None) -> str:
        if not options:
            raise SetupError(f"No choices available for: {message}")

        table = Table(title=message, title_justify="left", show_header=False, box=None)
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Choice")
        for index, (_, label) in enumerate(options, start=1):
            table.add_row(f"{index}.", label)
        self.console.print(table)

        values = [value for value, _ in options]
        default_index = values.index(default) + 1 if default in values else None
        index = click.prompt("Choose", type=click.IntRange(1, len(options)), default=default_index)
        return values[index - 1]

    def select_steps(self, steps: Sequence[Step]) -> List[str]:
        table = Table(title="Which steps do you want to run?", title_justify="left")
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Id", style="bold")
        table.add_column("Step")
        table.add_column("Description", style="dim")
        for index, step in enumerate(steps, start=1):
            table.add_row(f"{index}.", step.id, step.label, step.description)
        self.console.print(table)

        return click.prompt(
            "Steps to run (numbers or ids, comma-separated)",
            value_proc=lambda value: parse_step_selection(value, steps),
        )

    def choose_reserved_ip(self, unassigned: List[ReservedIpInfo]) -> Optional[str]:
        options: List[Option] = [
            (item.ip, f"{item.ip} [dim]({item.region}, unassigned)[/dim]") for item in unassigned
        ]
        options.append((NEW_CHOICE, "Create new [dim](allocate a new reserved IP)[/dim]"))
        chosen = self.select("Reserved IP (static IP for DNS and deploy)", options)
        return None if chosen == NEW_CHOICE else chosen

    def choose_neon_organization(self, organizations: List[NeonOrganization]) -> str:
        return self.select(
            "Neon organization",
            [(org.id, f"{org.name} [dim]{org.id}[/dim]") for org in organizations],
        )
