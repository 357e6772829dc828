"""Label selector parsing and rendering."""

from __future__ import annotations

from pexec.domain.errors import ConfigurationError
from pexec.domain.types import LabelSet


def parse_labels(raw: str) -> LabelSet:
    """Parse ``key1=value1,key2=value2`` into a label set.

    Whitespace around keys and values is ignored. Empty segments
    (``a=b,,c=d``) are skipped.

    Examples:
        >>> parse_labels("app=web,tier=front")
        {'app': 'web', 'tier': 'front'}
        >>> parse_labels("")
        {}
    """
    labels: LabelSet = {}
    for segment in raw.split(","):
        segment = segment.strip()
        if not segment:
            continue
        key, sep, value = segment.partition("=")
        key = key.strip()
        if not sep or not key:
            msg = f"Invalid label '{segment}', expected key=value"
            raise ConfigurationError(msg)
        if key in labels:
            msg = f"Duplicate label key '{key}'"
            raise ConfigurationError(msg)
        labels[key] = value.strip()
    return labels


def selector_from_labels(labels: LabelSet) -> str:
    """Render an equality-based selector with keys in sorted order.

    An empty label set renders as ``""``, which matches every pod.
    """
    return ",".join(f"{key}={labels[key]}" for key in sorted(labels))
