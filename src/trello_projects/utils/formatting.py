"""Formatting helpers for dates, cache payloads and console listings."""

import json
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any, TypeVar

T = TypeVar('T')


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO 8601 in UTC with a ``Z`` suffix.

    Args:
        dt: The datetime to format. Naive values are taken as UTC.

    Returns:
        ISO 8601 string, e.g. ``2020-07-23T21:58:52Z``.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def format_date(date_str: str | None) -> str:
    """Format date for display.

    Args:
        date_str: Date string to format, can be None.

    Returns:
        Formatted date string in 'Mon DD, YYYY, HH:MM AM/PM' format,
        or empty string if date_str is None or invalid.
    """
    if not date_str:
        return ''
    try:
        dt = datetime.fromisoformat(date_str.replace('Z', '+00:00'))
        return dt.strftime('%b %d, %Y, %I:%M %p')
    except (ValueError, AttributeError):
        return date_str


def pack(data: Any) -> str:
    """Serialise data for the cache.

    Keys are sorted and separators fixed so that equal data always packs to
    the same string.
    """
    return json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(',', ':'))


def unpack(text: str | bytes | None) -> Any:
    """Deserialise a cached value, treating a missing value as None."""
    if not text:
        return None
    return json.loads(text)


def pluralize(count: int, name: str) -> str:
    return name if count == 1 else f'{name}s'


def format_items(
    items: Sequence[T] | None,
    name: str,
    formatter: Callable[[T, int], str],
) -> list[str]:
    """Format a numbered listing of items.

    Args:
        items: Items to list, None is treated as empty.
        name: Singular item name used in the header.
        formatter: Called with each item and its index, returns one line.

    Returns:
        Output lines, starting with a ``Found N items`` header, or a single
        ``No items found`` line.
    """
    if not items:
        return [f"No {pluralize(0, name)} found"]

    lines = [f"Found {len(items)} {pluralize(len(items), name)}"]
    for index, item in enumerate(items):
        lines.append(formatter(item, index))
    return lines


def format_projects(projects: Sequence[dict[str, Any]] | None) -> list[str]:
    """Format cached projects as ``1. name`` lines."""
    return format_items(projects, 'project', lambda project, i: f"{i + 1}. {project.get('name', '')}")


def format_cards(cards: Sequence[dict[str, Any]] | None) -> list[str]:
    return format_items(
        cards,
        'card',
        lambda card, i: f"{i + 1}. {card.get('name', '')} ({format_date(card.get('dateLastActivity'))})",
    )


def format_labels(labels: Sequence[dict[str, Any]] | None) -> list[str]:
    return format_items(
        labels,
        'label',
        lambda label, i: f"{label.get('id', ''):26} {label.get('color') or '-':10} {label.get('name', '')}",
    )


def format_content(content: dict[str, str] | None) -> list[str]:
    """Format a content map as ``[key] = "text"`` blocks."""
    if not content:
        return ['No content found']

    lines = ['Found content:']
    for key, text in content.items():
        lines.append(f'[{key}] = "{text}"\n')
    return lines
