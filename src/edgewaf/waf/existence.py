"""Existence checks over previously fetched collections."""

from collections.abc import Iterable
from typing import Protocol

from edgewaf.api.models import Condition, ResponseObject, Snippet, Syslog


class Named(Protocol):
    name: str


def name_exists(items: Iterable[Named], name: str, case_sensitive: bool = False) -> bool:
    """Check whether a collection holds an item with the given name.

    Args:
        items: Previously fetched items.
        name: Name to look for.
        case_sensitive: Require an exact match instead of a case-insensitive one.

    Returns:
        True if a matching item exists.
    """
    if case_sensitive:
        return any(item.name == name for item in items)
    folded = name.casefold()
    return any(item.name.casefold() == folded for item in items)


def condition_exists(conditions: Iterable[Condition], name: str) -> bool:
    """Check whether a condition exists (case-insensitive)."""
    return name_exists(conditions, name)


def syslog_exists(syslogs: Iterable[Syslog], name: str) -> bool:
    """Check whether a syslog endpoint exists (case-insensitive)."""
    return name_exists(syslogs, name)


def response_object_exists(responses: Iterable[ResponseObject], name: str) -> bool:
    """Check whether a response object exists (case-insensitive)."""
    return name_exists(responses, name)


def snippet_exists(snippets: Iterable[Snippet], name: str) -> bool:
    """Check whether a VCL snippet exists (exact match)."""
    return name_exists(snippets, name, case_sensitive=True)
