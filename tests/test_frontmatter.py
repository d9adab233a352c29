"""Tests for frontmatter extraction, parsing and file discovery."""

import pytest

from registrar.errors import ExtractError, ParseError
from registrar.frontmatter import (
    RawFrontmatter,
    extract,
    list_files,
    parse_frontmatter,
    parse_json,
    parse_toml,
    parse_yaml,
    read_file,
)


class TestExtract:
    def test_yaml_block(self):
        block = extract("---\ntitle: A\n---\n\n# Body\n")
        assert block == RawFrontmatter(raw="title: A\n", format="yaml", body="\n# Body\n")

    def test_toml_block(self):
        block = extract('+++\ntitle = "A"\n+++\nbody')
        assert block.format == "toml"
        assert block.raw == 'title = "A"\n'

    def test_json_block(self):
        block = extract(';;;\n{"title": "A"}\n;;;\n')
        assert block.format == "json"
        assert block.body == ""

    def test_bom_is_ignored(self):
        assert extract("\ufeff---\na: 1\n---\n").raw == "a: 1\n"

    def test_crlf_line_endings(self):
        block = extract("---\r\na: 1\r\n---\r\nbody")
        assert block.raw == "a: 1\r\n"
        assert block.body == "body"

    def test_empty_block(self):
        assert extract("---\n---\n").raw == ""

    def test_no_frontmatter(self):
        with pytest.raises(ExtractError, match="does not start"):
            extract("# Just markdown\n")

    def test_unterminated(self):
        with pytest.raises(ExtractError, match="unterminated"):
            extract("---\ntitle: A\n")

    def test_empty_document(self):
        with pytest.raises(ExtractError):
            extract("")

    def test_mismatched_closer(self):
        with pytest.raises(ExtractError):
            extract("---\na: 1\n+++\n")


class TestParsers:
    def test_yaml(self):
        assert parse_yaml("title: A\ntags: [a, b]\n") == {"title": "A", "tags": ["a", "b"]}

    def test_yaml_empty_is_mapping(self):
        assert parse_yaml("") == {}

    def test_yaml_invalid(self):
        with pytest.raises(ParseError) as exc_info:
            parse_yaml("a: [b")
        assert exc_info.value.format == "yaml"

    def test_json(self):
        assert parse_json('{"a": [1, 2]}') == {"a": [1, 2]}
        assert parse_json("  \n") == {}

    def test_json_invalid(self):
        with pytest.raises(ParseError):
            parse_json("{a: 1}")

    def test_toml(self):
        assert parse_toml('title = "A"\n[meta]\nn = 1\n') == {"title": "A", "meta": {"n": 1}}

    def test_toml_invalid(self):
        with pytest.raises(ParseError):
            parse_toml("title = ")

    def test_frontmatter_dispatch(self):
        assert parse_frontmatter(RawFrontmatter('{"a": 1}', "json")) == {"a": 1}

    def test_frontmatter_must_be_mapping(self):
        with pytest.raises(ParseError, match="expected a mapping"):
            parse_frontmatter(RawFrontmatter("- a\n- b\n", "yaml"))

    def test_unknown_format(self):
        with pytest.raises(ParseError):
            parse_frontmatter(RawFrontmatter("", "ini"))


class TestFiles:
    @pytest.fixture
    def tree(self, tmp_path):
        (tmp_path / "docs" / "nested").mkdir(parents=True)
        for rel in ("docs/b.md", "docs/a.md", "docs/nested/c.md", "docs/skip.txt"):
            (tmp_path / rel).write_text("---\n---\n")
        return tmp_path

    def test_glob_sorted(self, tree):
        found = list_files("docs/*.md", tree)
        assert [p.name for p in found] == ["a.md", "b.md"]

    def test_recursive(self, tree):
        found = list_files(["docs/**/*.md"], tree)
        assert [p.relative_to(tree).as_posix() for p in found] == [
            "docs/a.md",
            "docs/b.md",
            "docs/nested/c.md",
        ]

    def test_overlapping_patterns_deduplicated(self, tree):
        found = list_files(["docs/*.md", "docs/a.md"], tree)
        assert len(found) == 2

    def test_absolute_pattern(self, tree):
        found = list_files(str(tree / "docs" / "*.txt"))
        assert [p.name for p in found] == ["skip.txt"]

    def test_no_match(self, tree):
        assert list_files("nothing/*.md", tree) == []

    def test_read_file(self, tree):
        assert read_file(tree / "docs" / "a.md") == "---\n---\n"
