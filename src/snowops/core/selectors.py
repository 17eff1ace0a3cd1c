"""Entity selector abstractions and implementations.

Selectors decide whether an entity offered by the names listing should be
extracted. They encapsulate matching logic and can be composed using logical
operators (AND / OR) to express complex selection rules.

Selectors are pure, side-effect-free objects and are intended to be reusable
across different frontends such as CLI commands, automation scripts, and
tests.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from snowops.core.models import EntityChoice


class EntitySelector(ABC):
    """
    Abstract base class for all entity selectors.

    An EntitySelector encapsulates a single piece of matching logic that
    determines whether a given entity satisfies a specific criterion.
    """

    @abstractmethod
    def matches(self, entity: EntityChoice) -> bool:
        """
        Determine whether the given entity matches this selector.

        Args:
            entity: EntityChoice instance to evaluate.

        Returns:
            True if the entity matches the selector criteria, False otherwise.
        """
        ...


class MatchAllSelector(EntitySelector):
    """Selector that accepts every entity."""

    def matches(self, entity: EntityChoice) -> bool:
        return True


class NameRegexSelector(EntitySelector):
    """
    Selector that matches entities based on a regular expression applied
    to `schema.name`.
    """

    def __init__(self, pattern: str):
        """
        Create a name-based regex selector.

        Args:
            pattern: Regular expression pattern used to match entity labels.
        """
        try:
            self.regex = re.compile(pattern)
        except re.error as exc:
            raise ValueError(f"Invalid regex expression: {exc}") from exc

    def matches(self, entity: EntityChoice) -> bool:
        return bool(self.regex.search(entity.label))


class KindSelector(EntitySelector):
    """Selector that matches entities of one kind (`table` or `view`)."""

    def __init__(self, kind: str):
        self.kind = kind.strip().lower()

    def matches(self, entity: EntityChoice) -> bool:
        return entity.kind.lower() == self.kind


class AndSelector(EntitySelector):
    """
    Composite selector that matches an entity only if all child selectors match.
    """

    def __init__(self, selectors: list[EntitySelector]):
        self.selectors = selectors

    def matches(self, entity: EntityChoice) -> bool:
        return all(s.matches(entity) for s in self.selectors)


class OrSelector(EntitySelector):
    """
    Composite selector that matches an entity if any child selector matches.
    """

    def __init__(self, selectors: list[EntitySelector]):
        self.selectors = selectors

    def matches(self, entity: EntityChoice) -> bool:
        return any(s.matches(entity) for s in self.selectors)
