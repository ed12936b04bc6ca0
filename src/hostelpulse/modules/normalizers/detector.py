"""Guess which property a blob of pasted data belongs to."""

from __future__ import annotations

import logging

from hostelpulse.config import get_properties

logger = logging.getLogger(__name__)


def detect_property(blob: str, properties: dict[str, str] | None = None) -> str | None:
    """Return the property name for ``blob``, or None if it can't be told.

    A configured property id in the data (e.g. inside a URL) wins over a
    display-name substring match.
    """
    props = properties if properties is not None else get_properties()

    for name, property_id in props.items():
        if property_id and property_id in blob:
            logger.debug("Detected property %s by id %s", name, property_id)
            return name

    blob_lower = blob.lower()
    for name in props:
        if name.lower() in blob_lower:
            logger.debug("Detected property %s by name", name)
            return name

    return None
