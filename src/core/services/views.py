"""Read-only helpers behind the table and mind-map views."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Iterable

from core.domain.models import Domain


class SortKey(str, Enum):
    NAME = "name"
    URL = "url"
    CREATED_AT = "createdAt"
    PROGRESS = "progress"


_SORTERS: dict[SortKey, Callable[[Domain], object]] = {
    SortKey.NAME: lambda d: d.name.casefold(),
    SortKey.URL: lambda d: d.url.casefold(),
    SortKey.CREATED_AT: lambda d: d.created_at,
    SortKey.PROGRESS: lambda d: d.progress,
}


def filter_domains(domains: Iterable[Domain], term: str | None) -> list[Domain]:
    """Case-insensitive substring match on name or url; empty term keeps everything."""

    items = list(domains)
    needle = (term or "").strip().casefold()
    if not needle:
        return items
    return [d for d in items if needle in d.name.casefold() or needle in d.url.casefold()]


def sort_domains(
    domains: Iterable[Domain],
    key: SortKey | str | None,
    *,
    descending: bool = False,
) -> list[Domain]:
    items = list(domains)
    if key is None:
        return items
    try:
        sort_key = SortKey(key)
    except ValueError:
        return items
    return sorted(items, key=_SORTERS[sort_key], reverse=descending)


def progress_band(progress: int) -> str:
    """Colour band used by both views: <25 low, <50 started, <75 advanced, else done."""

    if progress < 25:
        return "low"
    if progress < 50:
        return "started"
    if progress < 75:
        return "advanced"
    return "done"


BAND_STYLES: dict[str, str] = {
    "low": "red",
    "started": "yellow",
    "advanced": "blue",
    "done": "green",
}


def group_by_band(domains: Iterable[Domain]) -> dict[str, list[Domain]]:
    """Mind-map clusters: domains grouped by progress band, in band order."""

    groups: dict[str, list[Domain]] = {band: [] for band in BAND_STYLES}
    for domain in domains:
        groups[progress_band(domain.progress)].append(domain)
    return groups
