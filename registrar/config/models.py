from pydantic import BaseModel, ConfigDict, Field
from typing import Literal


class SourcesConfig(BaseModel):
    patterns: list[str] = ["**/*.md"]
    root: str = "."
    encoding: str = "utf-8"
    max_workers: int = Field(default=8, gt=0)
    timeout: float = Field(default=10.0, gt=0)


class SchemaConfig(BaseModel):
    path: str | None = None
    max_ref_depth: int = Field(default=100, gt=0)


class TemplateConfig(BaseModel):
    missing: Literal["empty", "keep"] = "empty"


class OutputConfig(BaseModel):
    path: str | None = None  # None writes to stdout
    format: Literal["json", "yaml", "markdown"] | None = None
    indent: int = Field(default=2, ge=0)


class RegistrarConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    schema_config: SchemaConfig = Field(default_factory=SchemaConfig, alias="schema")
    template: TemplateConfig = Field(default_factory=TemplateConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
