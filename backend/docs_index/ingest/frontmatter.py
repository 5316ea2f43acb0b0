"""Frontmatter splitting shared by local and online documents."""

from __future__ import annotations

import re
from typing import Any

import yaml

from docs_index.core.errors import FrontMatterError

_FRONT_MATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<header>.*?)^(?:---|\.\.\.)[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Return the parsed YAML header and the remaining body.

    Text without a leading ``---`` block, or whose block is not a YAML
    mapping, is returned unchanged with empty metadata.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return {}, text
    try:
        data = yaml.safe_load(match.group("header"))
    except yaml.YAMLError as exc:
        raise FrontMatterError(f"invalid frontmatter: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return {}, text
    return {str(key): value for key, value in data.items()}, text[match.end() :]


def describe(metadata: dict[str, Any]) -> str | None:
    """Pick a description from frontmatter fields."""
    for field_name in ("description", "title"):
        value = metadata.get(field_name)
        if value:
            return str(value)
    return None


__all__ = ["split_front_matter", "describe"]
