"""Progress rendering for extraction runs in the CLI."""

from __future__ import annotations

import threading
from typing import Any

from rich.console import Group
from rich.live import Live
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from snowops.cli.common.output import console
from snowops.core.logsink import LoggingSink

_MAX_ENTITY_NAME_WIDTH = 56
DONE_MESSAGE = "Data retrieved successfully"


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def _entity_label(container_name: str, entity_name: str, *, name_width: int) -> str:
    """Render `<entity>  (<schema>)` with the schema column aligned."""
    short_name = _truncate(entity_name, _MAX_ENTITY_NAME_WIDTH)
    return f"{short_name.ljust(name_width)}  ({container_name})"


class RichProgressSink:
    """
    A ProgressSink that shows live progress in the terminal.

    Shows:
      - an overall progress bar (x/y entities retrieved)
      - one spinner row per entity with its latest step and elapsed time

    Log events are forwarded to the standard logging tree. Use as a context
    manager around the extraction.
    """

    def __init__(self, total: int, *, name_width: int = 0) -> None:
        self.total = max(total, 1)
        self.name_width = min(name_width, _MAX_ENTITY_NAME_WIDTH)
        self._logs = LoggingSink()
        self._lock = threading.Lock()
        self._tasks: dict[tuple[str, str], TaskID] = {}

        self.overall = Progress(
            TextColumn("[bold]Overall[/]"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
        )
        self.per_entity = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.fields[entity]}[/]"),
            TextColumn("[meta]{task.fields[step]}[/]"),
            TimeElapsedColumn(),
            console=console,
        )
        self._overall_task = self.overall.add_task("overall", total=self.total)
        self._live = Live(
            Group(self.overall, self.per_entity),
            console=console,
            refresh_per_second=10,
            transient=True,
        )

    def __enter__(self) -> RichProgressSink:
        self._live.__enter__()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._live.__exit__(*exc_info)

    def log(
        self,
        level: str,
        payload: Any,
        message: str,
        hidden_keys: tuple[str, ...] = (),
    ) -> None:
        self._logs.log(level, payload, message, hidden_keys)

    def progress(self, message: str, container_name: str, entity_name: str) -> None:
        key = (container_name, entity_name)
        with self._lock:
            task_id = self._tasks.get(key)
            if task_id is None:
                task_id = self.per_entity.add_task(
                    "",
                    total=1,
                    entity=_entity_label(container_name, entity_name, name_width=self.name_width),
                    step=message,
                )
                self._tasks[key] = task_id
            if message == DONE_MESSAGE:
                self.per_entity.update(task_id, step="DONE", completed=1)
                self.overall.advance(self._overall_task, 1)
            else:
                self.per_entity.update(task_id, step=message)

    def clear(self) -> None:
        with self._lock:
            for task_id in self._tasks.values():
                self.per_entity.remove_task(task_id)
            self._tasks.clear()
