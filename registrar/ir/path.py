"""Dotted/bracketed property paths such as ``commands[].c1`` or ``a[0].b``."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Union

# A property name: anything up to the next separator. Hyphens and dollar
# signs are common in frontmatter keys.
_NAME_RE = re.compile(r"[^.\[\]\s{}]+")
_BRACKET_RE = re.compile(r"\[(\d*)\]")


class PathSyntaxError(ValueError):
    """Raised when a path string cannot be parsed."""

    def __init__(self, text: str, position: int, reason: str) -> None:
        self.text = text
        self.position = position
        super().__init__(f"Invalid path {text!r} at position {position}: {reason}")


@dataclass(frozen=True)
class Property:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Index:
    index: int

    def __str__(self) -> str:
        return f"[{self.index}]"


@dataclass(frozen=True)
class ArrayMarker:
    """``[]``: every item of an array."""

    def __str__(self) -> str:
        return "[]"


Segment = Union[Property, Index, ArrayMarker]

ARRAY_MARKER = ArrayMarker()


@dataclass(frozen=True)
class PathAddress:
    """Immutable sequence of path segments. The empty path is the root."""

    segments: tuple[Segment, ...] = ()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def root(cls) -> PathAddress:
        return _ROOT

    @classmethod
    def parse(cls, text: str | PathAddress) -> PathAddress:
        """Parse ``a.b[].c`` / ``a[0]`` / ``[].x`` into a PathAddress.

        The empty string parses to the root path.
        """
        if isinstance(text, PathAddress):
            return text
        text = text.strip()
        if not text:
            return _ROOT

        segments: list[Segment] = []
        pos = 0
        expect_name = True  # at start or right after a dot
        while pos < len(text):
            char = text[pos]
            if char == "[":
                match = _BRACKET_RE.match(text, pos)
                if not match:
                    raise PathSyntaxError(text, pos, "unterminated or non-numeric index")
                digits = match.group(1)
                segments.append(Index(int(digits)) if digits else ARRAY_MARKER)
                pos = match.end()
                expect_name = False
            elif char == ".":
                if expect_name:
                    raise PathSyntaxError(text, pos, "empty property name")
                pos += 1
                expect_name = True
                if pos == len(text):
                    raise PathSyntaxError(text, pos, "trailing dot")
            else:
                if not expect_name:
                    raise PathSyntaxError(text, pos, "missing '.' before property")
                match = _NAME_RE.match(text, pos)
                if not match:
                    raise PathSyntaxError(text, pos, f"unexpected character {char!r}")
                segments.append(Property(match.group(0)))
                pos = match.end()
                expect_name = False
        return cls(tuple(segments))

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def child(self, name: str) -> PathAddress:
        return PathAddress((*self.segments, Property(name)))

    def index(self, i: int) -> PathAddress:
        return PathAddress((*self.segments, Index(i)))

    def marker(self) -> PathAddress:
        return PathAddress((*self.segments, ARRAY_MARKER))

    def join(self, other: PathAddress | str) -> PathAddress:
        """Resolve *other* relative to this path."""
        other = PathAddress.parse(other)
        return PathAddress(self.segments + other.segments)

    def parent(self) -> PathAddress:
        if not self.segments:
            raise ValueError("The root path has no parent")
        return PathAddress(self.segments[:-1])

    def startswith(self, prefix: PathAddress) -> bool:
        n = len(prefix.segments)
        return self.segments[:n] == prefix.segments

    def relative_to(self, prefix: PathAddress) -> PathAddress:
        if not self.startswith(prefix):
            raise ValueError(f"{self} is not under {prefix}")
        return PathAddress(self.segments[len(prefix.segments):])

    def generalized(self) -> PathAddress:
        """Replace explicit indices with array markers (``a[3].b`` -> ``a[].b``)."""
        return PathAddress(
            tuple(ARRAY_MARKER if isinstance(s, Index) else s for s in self.segments)
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def has_marker(self) -> bool:
        return any(isinstance(s, ArrayMarker) for s in self.segments)

    @property
    def last(self) -> Segment | None:
        return self.segments[-1] if self.segments else None

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __str__(self) -> str:
        parts: list[str] = []
        for seg in self.segments:
            if isinstance(seg, Property) and parts:
                parts.append(".")
            parts.append(str(seg))
        return "".join(parts)

    def __repr__(self) -> str:
        return f"PathAddress({str(self)!r})"


_ROOT = PathAddress(())
