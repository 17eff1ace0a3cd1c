"""Selector construction utilities.

This module provides a small factory function that translates user intent
(such as CLI arguments) into concrete EntitySelector instances. It centralizes
validation and composition logic for selectors.
"""

from typing import Iterable

from snowops.core.selectors import (
    AndSelector,
    EntitySelector,
    KindSelector,
    MatchAllSelector,
    NameRegexSelector,
    OrSelector,
)

VALID_KINDS = ("table", "view")


def build_selector(
    *,
    name: str | None,
    kinds: Iterable[str],
    use_or: bool,
) -> EntitySelector:
    """
    Build a composite EntitySelector from user-provided criteria.

    Args:
        name: Optional regular expression matched against `database.schema.entity`.
        kinds: Iterable of entity kinds (`table` or `view`).
        use_or: If True, combine multiple selectors using logical OR.
                If False, combine them using logical AND.

    Returns:
        An EntitySelector; without criteria every entity matches.

    Raises:
        ValueError: If a kind is not one of `table` / `view`, or the regex
                    is invalid.
    """
    selectors: list[EntitySelector] = []

    if name:
        selectors.append(NameRegexSelector(name))

    kind_selectors: list[EntitySelector] = []
    for kind in kinds:
        if kind.strip().lower() not in VALID_KINDS:
            raise ValueError(f"Invalid kind: '{kind}' (expected one of {', '.join(VALID_KINDS)})")
        kind_selectors.append(KindSelector(kind))
    if len(kind_selectors) == 1:
        selectors.append(kind_selectors[0])
    elif kind_selectors:
        selectors.append(OrSelector(kind_selectors))

    if not selectors:
        return MatchAllSelector()

    if len(selectors) == 1:
        return selectors[0]

    return OrSelector(selectors) if use_or else AndSelector(selectors)
