"""Parser adapters for frontmatter blocks."""

from __future__ import annotations

import json
import tomllib
from typing import Any

import yaml

from registrar.errors import ParseError
from registrar.frontmatter.reader import RawFrontmatter


def parse_yaml(text: str) -> Any:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError("yaml", str(e)) from e
    # an empty block is an empty mapping, not null
    return {} if data is None else data


def parse_json(text: str) -> Any:
    if not text.strip():
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError("json", str(e)) from e


def parse_toml(text: str) -> Any:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ParseError("toml", str(e)) from e


_PARSERS = {
    "yaml": parse_yaml,
    "json": parse_json,
    "toml": parse_toml,
}


def parse_frontmatter(block: RawFrontmatter) -> dict[str, Any]:
    """Parse an extracted block with the parser for its format.

    Frontmatter must be a mapping; anything else is a ParseError.
    """
    parser = _PARSERS.get(block.format)
    if parser is None:
        raise ParseError(block.format, "no parser for this format")
    data = parser(block.raw)
    if not isinstance(data, dict):
        raise ParseError(block.format, f"expected a mapping, got {type(data).__name__}")
    return data
