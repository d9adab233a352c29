"""YAML config loading with env var expansion."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import RegistrarConfig


def load_config(cli_path: str | None = None) -> RegistrarConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults."""
    config_paths = [
        Path(cli_path) if cli_path else None,
        Path("./registrar.yaml"),
        Path.home() / ".registrar" / "config.yaml",
    ]

    if cli_path and not config_paths[0].exists():
        raise ValueError(f"Config file not found: {cli_path}")

    for path in config_paths:
        if path and path.exists():
            try:
                with open(path) as f:
                    raw = yaml.safe_load(f)
                if raw is None:
                    continue
                if not isinstance(raw, dict):
                    raise ValueError(f"Invalid config in {path}: top level must be a mapping")
                raw = _expand_env_vars(raw)
                return RegistrarConfig(**raw)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
            except ValidationError as e:
                raise ValueError(f"Invalid config in {path}: {e}") from e

    return RegistrarConfig()


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return re.sub(r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `registrar config init`
DEFAULT_CONFIG_TEMPLATE = """\
# registrar.yaml

# Source documents
sources:
  patterns:
    - "**/*.md"
  root: "."
  encoding: "utf-8"
  max_workers: 8               # concurrent document reads
  timeout: 10.0                # seconds per document read + parse

# Schema with x-* directives
schema:
  # path: "schema.json"
  max_ref_depth: 100

# Template rendering
template:
  missing: "empty"             # empty | keep (unresolved {variables})

# Output
output:
  # path: "registry.json"      # omit to write to stdout
  # format: "json"             # json | yaml | markdown (default: from templates)
  indent: 2

# Logging
log_level: "info"              # debug | info | warn | error
"""
