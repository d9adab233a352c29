"""Shared test fixtures for registrar."""

import json

import pytest
import yaml

from registrar.config.models import RegistrarConfig


def frontmatter_doc(data: dict, body: str = "Body text.\n") -> str:
    """A markdown document with *data* as YAML frontmatter."""
    return "---\n" + yaml.safe_dump(data, sort_keys=False) + "---\n\n" + body


BLOG_SCHEMA = {
    "type": "object",
    "properties": {
        "posts": {
            "type": "array",
            "x-frontmatter-part": True,
            "items": {"$ref": "#/definitions/post"},
        },
        "tags": {
            "type": "array",
            "x-derived-from": "posts[].tags[]",
            "x-derived-unique": True,
        },
    },
    "definitions": {
        "post": {
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "tags": {"type": "array", "items": {"type": "string"}},
            },
        },
    },
}


@pytest.fixture
def sample_config():
    return RegistrarConfig()


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path, monkeypatch):
    """Keep ~/.registrar/config.yaml on the developer machine out of tests."""
    home = tmp_path / "_home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def blog_schema():
    return json.loads(json.dumps(BLOG_SCHEMA))


@pytest.fixture
def write_schema(tmp_path):
    """Write a schema dict to tmp_path/schema.json and return the path."""

    def _write(schema: dict, name: str = "schema.json"):
        path = tmp_path / name
        path.write_text(json.dumps(schema, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_docs(tmp_path):
    """Write {filename: frontmatter dict | raw text} under tmp_path/docs."""

    def _write(docs: dict):
        docs_dir = tmp_path / "docs"
        docs_dir.mkdir(exist_ok=True)
        paths = []
        for name, content in docs.items():
            path = docs_dir / name
            text = content if isinstance(content, str) else frontmatter_doc(content)
            path.write_text(text, encoding="utf-8")
            paths.append(path)
        return paths

    return _write


@pytest.fixture
def blog_project(tmp_path, blog_schema, write_schema, write_docs):
    """Schema plus two posts whose tags overlap."""
    schema_path = write_schema(blog_schema)
    write_docs({
        "01-first.md": {"title": "First", "tags": ["a", "b"]},
        "02-second.md": {"title": "Second", "tags": ["b", "c"]},
    })
    config = RegistrarConfig(
        sources={"patterns": ["docs/*.md"], "root": str(tmp_path)},
        schema={"path": str(schema_path)},
    )
    return config, schema_path
