"""Whitelist of transcription parameters accepted by the prepare phase."""

import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

OPTION_NAMES = (
    "language",
    "lfasr_type",
    "has_participle",
    "max_alternatives",
    "speaker_number",
    "has_seperate",
    "role_type",
    "pd",
    "hot_word",
)

HOT_WORD_SEPARATOR = "|"


def render_option(value: Any) -> str:
    """Render an option value the way the speech API expects it in a form field."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set)):
        words = (render_option(v) for v in value)
        return HOT_WORD_SEPARATOR.join(w for w in words if w)
    return str(value).strip()


def normalize_options(
    defaults: Mapping[str, Any],
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, str]:
    """
    Merge per-call overrides onto configured defaults.

    Only whitelisted names survive; blank values are dropped rather than sent,
    so a blank override falls back to the configured default.
    """
    merged: dict[str, str] = {}
    for name in OPTION_NAMES:
        value = render_option(defaults.get(name))
        if value:
            merged[name] = value

    for name, raw in (overrides or {}).items():
        if name not in OPTION_NAMES:
            logger.debug("Ignoring unknown transcription option %s", name)
            continue
        value = render_option(raw)
        if value:
            merged[name] = value

    return merged
