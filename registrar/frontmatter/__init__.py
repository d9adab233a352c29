"""Collaborator adapters: frontmatter scanning, parsing and file access."""

from registrar.frontmatter.files import list_files, read_file
from registrar.frontmatter.parsers import parse_frontmatter, parse_json, parse_toml, parse_yaml
from registrar.frontmatter.reader import DELIMITERS, RawFrontmatter, extract

__all__ = [
    "DELIMITERS",
    "RawFrontmatter",
    "extract",
    "list_files",
    "parse_frontmatter",
    "parse_json",
    "parse_toml",
    "parse_yaml",
    "read_file",
]
