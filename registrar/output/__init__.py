"""Output subsystem: writes the artifact and run report."""

from registrar.output.writer import ArtifactWriter

__all__ = [
    "ArtifactWriter",
]
