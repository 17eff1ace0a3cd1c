"""Output formatting utilities for the CLI."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME, stderr=True)


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        """Print a header message."""
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def script(self, ddl: str) -> None:
        """Print a DDL script on stdout so it can be piped."""
        print(ddl)

    def names_table(self, names: Mapping[str, list[str]], title: str = "Entities") -> None:
        """Render entity names per schema (views are marked with ` (v)`)."""
        t = Table(title=title, show_lines=False)
        t.add_column("Schema", style="ok", no_wrap=True)
        t.add_column("Entities")
        t.add_column("Count", style="meta", justify="right")

        for schema, entities in names.items():
            t.add_row(schema, ", ".join(entities), str(len(entities)))

        console.print(t)

    def entities_table(self, entities: Iterable[Any], title: str = "Entities") -> None:
        """
        Expects objects with .schema .name .kind (like snowops.core.models.EntityChoice)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Schema", style="ok", no_wrap=True)
        t.add_column("Name")
        t.add_column("Kind", style="meta")

        for e in entities:
            t.add_row(e.schema, e.name, e.kind)

        console.print(t)

    def packages_table(self, packages: Iterable[Mapping[str, Any]], title: str = "Packages") -> None:
        """Summarize collection packages (one row per table, one per view group)."""
        t = Table(title=title, show_lines=False)
        t.add_column("Database", style="meta")
        t.add_column("Schema", style="ok")
        t.add_column("Entity")
        t.add_column("Documents", justify="right")
        t.add_column("Properties", justify="right")

        for p in packages:
            database = str(p.get("bucketInfo", {}).get("database", ""))
            if p.get("views"):
                names = ", ".join(v["name"] for v in p["views"])
                t.add_row(database, p["dbName"], f"[meta]views:[/] {names}", "-", "-")
                continue
            props = p.get("validation", {}).get("jsonSchema", {}).get("properties", {})
            t.add_row(
                database,
                p["dbName"],
                p.get("collectionName", ""),
                str(len(p.get("documents", []))),
                str(len(props)),
            )

        console.print(t)

    def failures_table(self, failures: Iterable[Any], title: str = "Failures") -> None:
        """
        Expects objects with .schema .entity .message
        (e.g. snowops.core.reverse.EntityFailure)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Schema", style="ok")
        t.add_column("Entity")
        t.add_column("Error", style="err")

        for f in failures:
            t.add_row(f.schema, f.entity or "*", f.message)

        console.print(t)


out = Out()
