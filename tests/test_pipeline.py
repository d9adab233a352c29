"""End-to-end tests for extraction and the build pipeline."""

import json
import threading
import time

import pytest
import yaml

import registrar.pipeline as pipeline_mod
from registrar.config.models import RegistrarConfig
from registrar.errors import ExtractError, RunCancelledError, SchemaError, UnsupportedFormatError
from registrar.pipeline import Pipeline, RunContext, build, extract_document, extract_documents


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class TestExtractDocument:
    def test_yaml_frontmatter(self, tmp_path):
        path = _write(tmp_path / "a.md", "---\ntitle: A\n---\nbody\n")
        assert extract_document(path) == {"title": "A"}

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(ExtractError, match="cannot read"):
            extract_document(tmp_path / "missing.md")


class TestExtractDocuments:
    @pytest.mark.asyncio
    async def test_keeps_input_order(self, write_docs, tmp_path):
        paths = write_docs({f"{i:02d}.md": {"n": i} for i in range(10)})
        outcomes = await extract_documents(paths, RunContext(), max_workers=3, root=tmp_path)
        assert [o.data["n"] for o in outcomes] == list(range(10))
        assert outcomes[0].doc_id == "docs/00.md"

    @pytest.mark.asyncio
    async def test_failures_become_outcomes(self, write_docs, tmp_path):
        paths = write_docs({
            "good.md": {"title": "ok"},
            "plain.md": "no frontmatter here\n",
            "broken.md": "---\ntitle: [oops\n---\n",
        })
        outcomes = await extract_documents(paths, RunContext(), root=tmp_path)
        assert [o.ok for o in outcomes] == [True, False, False]
        assert isinstance(outcomes[1].error, ExtractError)

    @pytest.mark.asyncio
    async def test_timeout(self, write_docs, tmp_path, monkeypatch):
        paths = write_docs({"fast.md": {"n": 1}, "slow.md": {"n": 2}})
        real = pipeline_mod.extract_document

        def _slow(path, encoding="utf-8"):
            if path.name == "slow.md":
                time.sleep(0.5)
            return real(path, encoding)

        monkeypatch.setattr(pipeline_mod, "extract_document", _slow)
        outcomes = await extract_documents(paths, RunContext(), timeout=0.05, root=tmp_path)
        assert outcomes[0].ok
        assert not outcomes[1].ok
        assert "timed out" in str(outcomes[1].error)

    @pytest.mark.asyncio
    async def test_timed_out_read_keeps_its_slot(self, write_docs, tmp_path, monkeypatch):
        paths = write_docs({"slow.md": {"n": 1}, "next.md": {"n": 2}})
        real = pipeline_mod.extract_document
        lock = threading.Lock()
        in_flight = []
        peak = []

        def _tracked(path, encoding="utf-8"):
            with lock:
                in_flight.append(path.name)
                peak.append(len(in_flight))
            try:
                if path.name == "slow.md":
                    time.sleep(0.3)
                return real(path, encoding)
            finally:
                with lock:
                    in_flight.remove(path.name)

        monkeypatch.setattr(pipeline_mod, "extract_document", _tracked)
        outcomes = await extract_documents(paths, RunContext(), max_workers=1, timeout=0.05, root=tmp_path)
        assert not outcomes[0].ok
        assert outcomes[1].data == {"n": 2}
        assert max(peak) == 1

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, write_docs, tmp_path):
        paths = write_docs({"a.md": {"n": 1}})
        context = RunContext()
        context.cancel()
        with pytest.raises(RunCancelledError):
            await extract_documents(paths, context, root=tmp_path)

    @pytest.mark.asyncio
    async def test_cancel_mid_run(self, write_docs, tmp_path, monkeypatch):
        paths = write_docs({f"{i}.md": {"n": i} for i in range(5)})
        context = RunContext()
        started = []
        real = pipeline_mod.extract_document

        def _cancelling(path, encoding="utf-8"):
            started.append(path.name)
            context.cancel()
            return real(path, encoding)

        monkeypatch.setattr(pipeline_mod, "extract_document", _cancelling)
        with pytest.raises(RunCancelledError):
            await extract_documents(paths, context, max_workers=1, root=tmp_path)
        assert started == ["0.md"]


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class TestPipeline:
    @pytest.mark.asyncio
    async def test_blog_registry(self, blog_project):
        config, _ = blog_project
        run = await Pipeline(config).run()
        assert run.error is None
        assert json.loads(run.output) == {
            "posts": [
                {"title": "First", "tags": ["a", "b"]},
                {"title": "Second", "tags": ["b", "c"]},
            ],
            "tags": ["a", "b", "c"],
        }
        stats = run.result.statistics
        assert (stats.total, stats.processed, stats.failed) == (2, 2, 0)
        assert str(run.directives.item_path) == "posts"

    @pytest.mark.asyncio
    async def test_failed_documents_reported(self, blog_project, write_docs):
        config, _ = blog_project
        write_docs({"03-plain.md": "# no frontmatter\n"})
        run = await Pipeline(config).run()
        data = json.loads(run.output)
        assert [p["title"] for p in data["posts"]] == ["First", "Second"]
        failures = run.result.failures
        assert [f.doc_id for f in failures] == ["docs/03-plain.md"]
        assert failures[0].kind is None
        assert run.result.statistics.failed == 1

    @pytest.mark.asyncio
    async def test_one_bad_document_in_five(self, write_schema, write_docs, tmp_path):
        schema_path = write_schema({
            "type": "object",
            "properties": {
                "posts": {
                    "type": "array",
                    "x-frontmatter-part": True,
                    "items": {"properties": {"tags": {"x-jmespath-filter": "sort(@)"}}},
                },
            },
        })
        write_docs({
            "1.md": {"tags": ["b", "a"]},
            "2.md": {"tags": ["c"]},
            "3.md": {"tags": ["b", 1]},
            "4.md": {"tags": ["e", "d"]},
            "5.md": {"tags": []},
        })
        config = RegistrarConfig(sources={"patterns": ["docs/*.md"], "root": str(tmp_path)})
        run = await Pipeline(config).run(schema_path)

        stats = run.result.statistics
        assert (stats.processed, stats.failed) == (4, 1)
        assert run.result.failures[0].doc_id == "docs/3.md"
        assert run.result.failures[0].kind == "x-jmespath-filter"
        assert json.loads(run.output)["posts"] == [
            {"tags": ["a", "b"]},
            {"tags": ["c"]},
            {"tags": ["d", "e"]},
            {"tags": []},
        ]

    @pytest.mark.asyncio
    async def test_structured_templates(self, blog_project, blog_schema, write_schema, tmp_path):
        config, _ = blog_project
        _write(tmp_path / "main.json", json.dumps({"all_tags": "{tags}", "entries": "{@items}"}))
        _write(tmp_path / "item.json", json.dumps({"name": "{title}", "first_tag": "{tags[0]}"}))
        blog_schema["x-template"] = "main.json"
        blog_schema["properties"]["posts"]["x-template-items"] = "item.json"
        schema_path = write_schema(blog_schema)

        run = await Pipeline(config).run(schema_path)
        assert run.result.output_format == "json"
        assert run.result.artifact == {
            "all_tags": ["a", "b", "c"],
            "entries": [
                {"name": "First", "first_tag": "a"},
                {"name": "Second", "first_tag": "b"},
            ],
        }

    @pytest.mark.asyncio
    async def test_markdown_templates(self, blog_project, blog_schema, write_schema, tmp_path):
        config, _ = blog_project
        _write(tmp_path / "index.md", "# Posts\n\n{@items}\n")
        _write(tmp_path / "item.md", "- {title}")
        blog_schema["x-template"] = "index.md"
        blog_schema["x-template-items"] = "item.md"
        schema_path = write_schema(blog_schema)

        run = await Pipeline(config).run(schema_path)
        assert run.result.output_format == "markdown"
        assert run.output == "# Posts\n\n- First\n- Second\n"

    @pytest.mark.asyncio
    async def test_configured_format_overrides(self, blog_project):
        config, _ = blog_project
        config.output.format = "yaml"
        run = await Pipeline(config).run()
        assert yaml.safe_load(run.output)["tags"] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_markdown_without_templates_joins_items(self, blog_project):
        config, _ = blog_project
        config.output.format = "markdown"
        run = await Pipeline(config).run()
        assert run.error is None
        assert run.output.startswith('{"title":"First"')

    @pytest.mark.asyncio
    async def test_markdown_needs_text_artifact(self, blog_project, blog_schema, write_schema, tmp_path):
        config, _ = blog_project
        _write(tmp_path / "main.json", json.dumps({"entries": "{@items}"}))
        blog_schema["x-template"] = "main.json"
        config.output.format = "markdown"
        run = await Pipeline(config).run(write_schema(blog_schema))
        assert run.output is None
        assert isinstance(run.error, UnsupportedFormatError)
        assert run.result.artifact["entries"][0]["title"] == "First"

    @pytest.mark.asyncio
    async def test_explicit_paths(self, blog_project, tmp_path):
        config, _ = blog_project
        run = await Pipeline(config).run(paths=[tmp_path / "docs" / "02-second.md"])
        assert json.loads(run.output)["tags"] == ["b", "c"]

    @pytest.mark.asyncio
    async def test_without_item_path(self, write_schema, write_docs, tmp_path):
        schema_path = write_schema({"type": "object", "properties": {"title": {"type": "string"}}})
        write_docs({"a.md": {"title": "A"}, "b.md": {"title": "B"}})
        config = RegistrarConfig(sources={"patterns": ["docs/*.md"], "root": str(tmp_path)})
        run = await Pipeline(config).run(schema_path)
        assert json.loads(run.output) == [{"title": "A"}, {"title": "B"}]

    @pytest.mark.asyncio
    async def test_missing_schema(self, sample_config, tmp_path):
        with pytest.raises(SchemaError):
            await Pipeline(sample_config).run(tmp_path / "absent.json")

    @pytest.mark.asyncio
    async def test_no_schema_configured(self, sample_config):
        with pytest.raises(SchemaError, match="No schema"):
            await Pipeline(sample_config).run()

    @pytest.mark.asyncio
    async def test_ref_cache_shared_through_context(self, blog_project):
        config, _ = blog_project
        context = RunContext()
        await Pipeline(config, context).run()
        assert any(key.endswith("#/definitions/post") for key in context.ref_cache)


class TestBuild:
    def test_sync_wrapper(self, blog_project):
        config, schema_path = blog_project
        run = build(config, schema_path)
        assert json.loads(run.output)["tags"] == ["a", "b", "c"]

    def test_cancelled_run(self, blog_project):
        config, _ = blog_project
        context = RunContext()
        context.cancel()
        with pytest.raises(RunCancelledError):
            build(config, context=context)
