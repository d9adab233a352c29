"""Frontmatter block scanner: finds the delimited block, does not parse it."""

from __future__ import annotations

from dataclasses import dataclass

from registrar.errors import ExtractError

# Opening/closing delimiter -> frontmatter format
DELIMITERS = {
    "---": "yaml",
    "+++": "toml",
    ";;;": "json",
}


@dataclass(frozen=True)
class RawFrontmatter:
    raw: str
    format: str
    body: str = ""


def extract(text: str) -> RawFrontmatter:
    """Return the frontmatter block at the start of *text*.

    The block opens on the first line with one of ``---`` (YAML), ``+++``
    (TOML) or ``;;;`` (JSON) and closes at the next line holding the same
    delimiter. Raises ExtractError when there is no complete block.
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    lines = text.splitlines(keepends=True)
    if not lines:
        raise ExtractError("document is empty")

    opener = lines[0].strip()
    fmt = DELIMITERS.get(opener)
    if fmt is None:
        raise ExtractError("document does not start with a frontmatter delimiter")

    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == opener:
            raw = "".join(lines[1:i])
            body = "".join(lines[i + 1:])
            return RawFrontmatter(raw=raw, format=fmt, body=body)

    raise ExtractError(f"unterminated frontmatter block (missing closing {opener})")
