"""Tests for template parsing, loading and scoped rendering."""

import json
from datetime import date

import pytest

from registrar.errors import InvalidDirectiveError, TemplateLoadError
from registrar.ir import IRBuilder, PathAddress, TemplateScope, resolve
from registrar.schema import Directive, DirectiveKind, ResolvedSchema
from registrar.template import (
    ItemsMarker,
    LiteralText,
    TemplateDomainFacade,
    TemplateKind,
    TemplateRenderer,
    Variable,
    compile_template,
    load_template_file,
    parse_template,
    to_text,
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseTemplate:
    def test_tokens_in_order(self):
        tokens = parse_template("# {title}\n\n{@items}\n")
        assert tokens == (
            LiteralText("# "),
            Variable("title", PathAddress.parse("title")),
            LiteralText("\n\n"),
            ItemsMarker(),
            LiteralText("\n"),
        )

    def test_paths_in_placeholders(self):
        tokens = parse_template("{meta.author} {posts[0].title} {x-id}")
        assert [t.raw for t in tokens if isinstance(t, Variable)] == ["meta.author", "posts[0].title", "x-id"]

    def test_non_placeholders_stay_literal(self):
        text = 'function() { return 1; } {"json": true} { spaced }'
        assert parse_template(text) == (LiteralText(text),)

    def test_empty(self):
        assert parse_template("") == ()


class TestCompileTemplate:
    def test_kind_from_name(self):
        assert compile_template("a.json", "{}").kind is TemplateKind.structured
        assert compile_template("a.yml", "a: 1").kind is TemplateKind.structured
        assert compile_template("a.md", "x").kind is TemplateKind.text

    def test_structured_leaves_tokenized(self):
        template = compile_template("item.json", json.dumps({"name": "{title}", "n": 3, "list": ["{a}", "x"]}))
        assert template.body["n"] == 3
        assert template.body["name"] == (Variable("title", PathAddress.parse("title")),)
        assert template.variables == ("title", "a")
        assert not template.has_items_marker

    def test_items_marker_detected(self):
        template = compile_template("main.json", json.dumps({"entries": "{@items}"}))
        assert template.has_items_marker

    def test_invalid_structured(self):
        with pytest.raises(TemplateLoadError):
            compile_template("bad.yaml", "a: [unclosed")

    def test_unquoted_yaml_placeholders(self):
        template = compile_template(
            "item.yaml",
            "name: {title}\nid: x-{title}\nfirst: {tags[0]}  # leading tag\nall:\n  - {@items}\n",
        )
        assert template.body["name"] == (Variable("title", PathAddress.parse("title")),)
        assert template.body["first"] == (Variable("tags[0]", PathAddress.parse("tags[0]")),)
        assert template.body["all"] == [(ItemsMarker(),)]
        assert template.has_items_marker

    def test_yaml_flow_mappings_untouched(self):
        template = compile_template("t.yaml", "meta: {a: 1, b: '{title}'}\n")
        assert template.body["meta"]["a"] == 1
        assert template.variables == ("title",)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestToText:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "null"),
            (True, "true"),
            (False, "false"),
            (3, "3"),
            (1.5, "1.5"),
            ("s", "s"),
            (date(2024, 5, 1), "2024-05-01"),
            ([1, "a"], '[1,"a"]'),
            ({"k": "v"}, '{"k":"v"}'),
        ],
    )
    def test_canonical_strings(self, value, expected):
        assert to_text(value) == expected


class TestTemplateRenderer:
    @pytest.fixture
    def root(self):
        return IRBuilder.from_data({
            "site": "example.org",
            "count": 2,
            "posts": [
                {"title": "First", "tags": ["a"]},
                {"title": "Second", "tags": []},
            ],
        })

    def test_text_substitution(self, root):
        template = compile_template("t.md", "{site} has {count} posts")
        assert TemplateRenderer().render(template, TemplateScope.at_root(root)) == "example.org has 2 posts"

    def test_missing_empty(self, root):
        template = compile_template("t.md", "[{nope}]")
        assert TemplateRenderer().render(template, TemplateScope.at_root(root)) == "[]"

    def test_missing_keep(self, root):
        template = compile_template("t.md", "[{nope}]")
        assert TemplateRenderer(missing="keep").render(template, TemplateScope.at_root(root)) == "[{nope}]"

    def test_non_scalar_as_json(self, root):
        template = compile_template("t.md", "tags={posts[0].tags}")
        assert TemplateRenderer().render(template, TemplateScope.at_root(root)) == 'tags=["a"]'

    def test_structured_keeps_native_types(self, root):
        template = compile_template("t.json", json.dumps({"n": "{count}", "label": "n={count}", "first": "{posts[0]}"}))
        rendered = TemplateRenderer().render(template, TemplateScope.at_root(root))
        assert rendered == {"n": 2, "label": "n=2", "first": {"title": "First", "tags": ["a"]}}

    def test_items_in_structure(self, root):
        template = compile_template("t.json", json.dumps({"site": "{site}", "posts": "{@items}"}))
        rendered = TemplateRenderer().render(template, TemplateScope.at_root(root), items=[{"t": 1}])
        assert rendered == {"site": "example.org", "posts": [{"t": 1}]}

    def test_unquoted_yaml_item_template(self, root):
        template = compile_template("item.yaml", "name: {title}\nid: x-{title}\n")
        rendered = TemplateRenderer().render_item(template, TemplateScope.at_root(root), resolve(root, "posts[0]"))
        assert rendered == {"name": "First", "id": "x-First"}

    def test_items_in_text_joined_by_newline(self, root):
        template = compile_template("t.md", "# {site}\n{@items}")
        rendered = TemplateRenderer().render(template, TemplateScope.at_root(root), items=["- a", "- b"])
        assert rendered == "# example.org\n- a\n- b"

    def test_render_item_uses_child_scope(self, root):
        item = compile_template("item.md", "- {title} ({site})")
        scope = TemplateScope.at_root(root)
        element = resolve(root, "posts[1]")
        assert TemplateRenderer().render_item(item, scope, element) == "- Second (example.org)"

    def test_render_item_without_template(self, root):
        element = resolve(root, "posts[0]")
        assert TemplateRenderer().render_item(None, TemplateScope.at_root(root), element) == {
            "title": "First",
            "tags": ["a"],
        }

    def test_render_items(self, root):
        item = compile_template("item.json", json.dumps({"name": "{title}"}))
        elements = resolve(root, "posts").items
        rendered = TemplateRenderer().render_items(item, TemplateScope.at_root(root), elements)
        assert rendered == [{"name": "First"}, {"name": "Second"}]

    def test_render_does_not_change_scope(self, root):
        scope = TemplateScope.at_root(root)
        item = compile_template("item.md", "{title}")
        TemplateRenderer().render_item(item, scope, resolve(root, "posts[0]"))
        assert scope.depth == 0


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _directive(kind, value, path=""):
    return Directive(kind, PathAddress.parse(path), value)


class TestLoadTemplateFile:
    def test_loads(self, tmp_path):
        path = tmp_path / "main.md"
        path.write_text("# {title}\n")
        template = load_template_file(path)
        assert template.name == "main.md"
        assert template.variables == ("title",)

    def test_missing(self, tmp_path):
        with pytest.raises(TemplateLoadError, match="file not found"):
            load_template_file(tmp_path / "absent.md")


class TestTemplateDomainFacade:
    @pytest.fixture
    def schema(self, tmp_path):
        (tmp_path / "templates").mkdir()
        (tmp_path / "templates" / "main.yaml").write_text("entries: '{@items}'\n")
        (tmp_path / "templates" / "item.json").write_text('{"name": "{title}"}')
        (tmp_path / "templates" / "page.md").write_text("# Index\n{@items}\n")
        return ResolvedSchema(root={}, base_path=tmp_path)

    def test_relative_to_schema(self, schema):
        bundle = TemplateDomainFacade().load_templates(schema, [
            _directive(DirectiveKind.template, "templates/main.yaml"),
            _directive(DirectiveKind.template_items, "templates/item.json", "posts"),
        ])
        assert bundle.main_template.has_items_marker
        assert bundle.items_template.variables == ("title",)
        assert bundle.output_format == "yaml"

    def test_no_templates(self, schema):
        bundle = TemplateDomainFacade().load_templates(schema, [])
        assert bundle.main_template is None
        assert bundle.items_template is None
        assert bundle.output_format == "json"

    def test_format_from_items_template(self, schema):
        bundle = TemplateDomainFacade().load_templates(schema, [
            _directive(DirectiveKind.template_items, "templates/page.md"),
        ])
        assert bundle.output_format == "markdown"

    def test_explicit_format_wins(self, schema):
        bundle = TemplateDomainFacade().load_templates(schema, [
            _directive(DirectiveKind.template, "templates/main.yaml"),
            _directive(DirectiveKind.template_format, "json"),
        ])
        assert bundle.output_format == "json"

    def test_invalid_format(self, schema):
        with pytest.raises(InvalidDirectiveError):
            TemplateDomainFacade().load_templates(schema, [_directive(DirectiveKind.template_format, "csv")])

    def test_first_directive_wins(self, schema):
        bundle = TemplateDomainFacade().load_templates(schema, [
            _directive(DirectiveKind.template, "templates/page.md"),
            _directive(DirectiveKind.template, "templates/missing.md", "other"),
        ])
        assert bundle.main_template.name == "page.md"

    def test_missing_template_file(self, schema):
        with pytest.raises(TemplateLoadError):
            TemplateDomainFacade().load_templates(schema, [
                _directive(DirectiveKind.template, "templates/absent.json"),
            ])

    def test_rejects_other_intents(self, schema):
        with pytest.raises(ValueError):
            TemplateDomainFacade().load_templates(schema, [_directive(DirectiveKind.derived_from, "a[]")])
