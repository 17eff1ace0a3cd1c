"""Terminal UI utilities for Snowflake reverse engineering."""

from __future__ import annotations

import questionary

from snowops.cli.common.tui_style import QUESTIONARY_STYLE_SELECT
from snowops.core.models import EntityChoice

_MAX_ENTITY_NAME_WIDTH = 96


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def _entity_choice_title(entity: EntityChoice, *, name_width: int) -> str:
    """Format one entity choice as `<schema.name>  (<kind>)` with aligned kind column."""
    short_name = _truncate(entity.label, _MAX_ENTITY_NAME_WIDTH)
    return f"{short_name.ljust(name_width)}  ({entity.kind})"


def select_entities(entities: list[EntityChoice]) -> list[EntityChoice]:
    """Display a checkbox prompt to select tables and views from a list.

    Args:
        entities: EntityChoice objects to choose from.

    Returns:
        A list of selected EntityChoice objects, or an empty list if none selected.
    """
    shown_names = [_truncate(e.label, _MAX_ENTITY_NAME_WIDTH) for e in entities]
    name_width = max((len(name) for name in shown_names), default=0)

    choices = [
        questionary.Choice(
            title=_entity_choice_title(e, name_width=name_width),
            value=e,
        )
        for e in entities
    ]

    return (
        questionary.checkbox(
            "Select entities:",
            choices=choices,
            style=QUESTIONARY_STYLE_SELECT,
        ).ask()
        or []
    )
