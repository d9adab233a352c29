"""Template loading from schema directives."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from registrar.errors import TemplateLoadError
from registrar.schema.models import Directive, DirectiveKind, ResolvedSchema
from registrar.template.models import Template, TemplateBundle
from registrar.template.parser import compile_template

logger = logging.getLogger(__name__)

_FORMAT_BY_SUFFIX = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
    ".markdown": "markdown",
}

DEFAULT_FORMAT = "json"


def load_template_file(path: str | Path) -> Template:
    path = Path(path)
    if not path.is_file():
        raise TemplateLoadError(str(path), "file not found")
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateLoadError(str(path), str(e)) from e
    template = compile_template(path.name, content)
    logger.debug(
        "loaded template %s (%s, %d variables, items marker: %s)",
        path, template.kind.value, len(template.variables), template.has_items_marker,
    )
    return template


class TemplateDomainFacade:
    """Turns template directives into loaded templates and an output format.

    Only template-intent directives are accepted; paths are resolved against
    the schema's directory. The first directive of each kind wins.
    """

    def load_templates(
        self,
        schema: ResolvedSchema,
        template_directives: Iterable[Directive],
    ) -> TemplateBundle:
        chosen: dict[DirectiveKind, Directive] = {}
        for directive in template_directives:
            if directive.kind not in (
                DirectiveKind.template,
                DirectiveKind.template_items,
                DirectiveKind.template_format,
            ):
                raise ValueError(f"not a template directive: {directive}")
            if directive.kind in chosen:
                logger.warning("ignoring duplicate %s at %s", directive.kind.value, directive.path or "<root>")
                continue
            chosen[directive.kind] = directive

        main = self._load(schema, chosen.get(DirectiveKind.template))
        items = self._load(schema, chosen.get(DirectiveKind.template_items))

        fmt_directive = chosen.get(DirectiveKind.template_format)
        if fmt_directive is not None:
            output_format = fmt_directive.validate()
        else:
            output_format = self._infer_format(main or items)
        return TemplateBundle(main_template=main, items_template=items, output_format=output_format)

    @staticmethod
    def _load(schema: ResolvedSchema, directive: Directive | None) -> Template | None:
        if directive is None:
            return None
        value = directive.validate()
        path = Path(value)
        if not path.is_absolute():
            path = schema.base_path / path
        return load_template_file(path)

    @staticmethod
    def _infer_format(template: Template | None) -> str:
        if template is None:
            return DEFAULT_FORMAT
        return _FORMAT_BY_SUFFIX.get(Path(template.name).suffix.lower(), DEFAULT_FORMAT)
