"""
Command group registry for the ``simulive`` CLI.

``stream`` owns stream records and state inspection; ``runtime`` owns the API
server, schema setup and headless viewer sessions. Each is a Typer app mounted
on the root application through :class:`CliRouter`.
"""

from __future__ import annotations

from dataclasses import dataclass

import typer


@dataclass(frozen=True)
class CommandGroup:
    name: str
    app: typer.Typer
    help_text: str | None = None


class CliRouter:
    """Mounts command groups on ``root_app`` and remembers their order."""

    def __init__(self, root_app: typer.Typer) -> None:
        self.root_app = root_app
        self._groups: dict[str, CommandGroup] = {}

    def register(
        self,
        name: str,
        command_group: typer.Typer,
        *,
        help_text: str | None = None,
    ) -> CommandGroup:
        if name in self._groups:
            raise ValueError(f"Command group '{name}' is already registered")

        group = CommandGroup(name=name, app=command_group, help_text=help_text)
        self.root_app.add_typer(command_group, name=name, help=help_text)
        self._groups[name] = group
        return group

    def get(self, name: str) -> CommandGroup:
        return self._groups[name]

    def list_registered_groups(self) -> list[str]:
        return list(self._groups)
