"""Sample size computation for schema inference."""

from __future__ import annotations

import math

from snowops.core.models import SamplingMode, SamplingPolicy


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_sample_size(row_count: int, policy: SamplingPolicy) -> int:
    """
    Return how many rows to fetch for an entity with `row_count` rows.

    An absolute policy returns its value verbatim (no clamping to the row
    count). A relative policy returns `row_count * percent / 100`, rounded
    half up.
    """
    if policy.active is SamplingMode.ABSOLUTE:
        return policy.absolute
    return _round_half_up(row_count * policy.relative / 100)
