"""
TVL Change Calculator.

============================================================
PURPOSE
============================================================
Produces percentage changes per window {1d, 7d, 30d, 365d}.

For each window independently:
1. Use the provider-supplied delta when present
2. Otherwise find the series point closest to ``now - window``
   and compute (current - found) / found * 100
3. Otherwise None (no series, or the found value is zero)

"current" is the last point of the series.

============================================================
"""

from typing import Dict, Mapping, Optional, Sequence

from data_sources.models import TvlPoint, filter_chain_tvls, finite_or_none, positive_or_none


DAY_SECONDS = 86400

TVL_CHANGE_WINDOWS: Dict[str, int] = {
    "1d": DAY_SECONDS,
    "7d": 7 * DAY_SECONDS,
    "30d": 30 * DAY_SECONDS,
    "365d": 365 * DAY_SECONDS,
}


def empty_changes() -> Dict[str, Optional[float]]:
    return {window: None for window in TVL_CHANGE_WINDOWS}


def find_closest_point(series: Sequence[TvlPoint], target: float) -> Optional[TvlPoint]:
    """Point whose timestamp is nearest to ``target`` (first wins on ties)."""
    closest: Optional[TvlPoint] = None
    best_diff = float("inf")
    for point in series:
        diff = abs(point.timestamp - target)
        if diff < best_diff:
            best_diff = diff
            closest = point
    return closest


def percent_change(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    if current is None or previous is None or previous == 0:
        return None
    return finite_or_none((current - previous) / previous * 100)


def calculate_changes(
    direct: Optional[Mapping[str, Optional[float]]] = None,
    series: Sequence[TvlPoint] = (),
    now: Optional[float] = None,
) -> Dict[str, Optional[float]]:
    """
    Window -> percent change.

    Args:
        direct: Provider deltas keyed by window label
        series: TVL points, oldest first
        now: Reference time in unix seconds (defaults to the last point)

    Returns:
        Dict with every window key; unknown windows are None
    """
    direct = direct or {}
    changes = empty_changes()

    current = series[-1].value if series else None
    if now is None and series:
        now = series[-1].timestamp

    for window, seconds in TVL_CHANGE_WINDOWS.items():
        value = finite_or_none(direct.get(window))
        if value is not None:
            changes[window] = value
            continue
        if not series or now is None:
            continue
        found = find_closest_point(series, now - seconds)
        changes[window] = percent_change(current, found.value if found else None)

    return changes


def direct_deltas(change_1d=None, change_7d=None, change_1m=None) -> Dict[str, Optional[float]]:
    """Provider delta fields mapped onto window labels."""
    return {
        "1d": finite_or_none(change_1d),
        "7d": finite_or_none(change_7d),
        "30d": finite_or_none(change_1m),
        "365d": None,
    }


def extract_latest_tvl(
    series: Sequence[TvlPoint] = (),
    tvl: Optional[float] = None,
    chain_tvls: Optional[Mapping[str, float]] = None,
) -> Optional[float]:
    """Last series value, else the scalar, else the sum of the chain breakdown."""
    if series:
        latest = positive_or_none(series[-1].value)
        if latest is not None:
            return latest
    scalar = positive_or_none(tvl)
    if scalar is not None:
        return scalar
    return positive_or_none(sum_chain_tvls(chain_tvls))


def sum_chain_tvls(chain_tvls: Optional[Mapping[str, float]]) -> Optional[float]:
    filtered = filter_chain_tvls(chain_tvls)
    if not filtered:
        return None
    return sum(filtered.values())


def has_any_change(changes: Mapping[str, Optional[float]]) -> bool:
    return any(v is not None for v in changes.values())


def merge_changes(*candidates: Optional[Mapping[str, Optional[float]]]) -> Dict[str, Optional[float]]:
    """Window-by-window first non-null across candidates."""
    merged = empty_changes()
    for window in merged:
        for candidate in candidates:
            if candidate is None:
                continue
            value = candidate.get(window)
            if value is not None:
                merged[window] = value
                break
    return merged
