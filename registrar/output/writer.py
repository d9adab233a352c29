"""ArtifactWriter: writes the serialized registry to a file or stdout."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TextIO

import yaml

from registrar.aggregation.models import FinalResult
from registrar.config.models import OutputConfig

logger = logging.getLogger(__name__)


class ArtifactWriter:
    """Writes a serialized artifact to ``OutputConfig.path`` or to a stream.

    Handles directory creation, an optional run report next to the artifact,
    and dry-run mode.
    """

    def __init__(self, config: OutputConfig, stream: TextIO | None = None) -> None:
        self.config = config
        self.dest = Path(config.path) if config.path else None
        self.stream = stream

    def write(self, text: str, *, dry_run: bool = False) -> Path | None:
        """Write *text*. Returns the destination path, or None for stdout."""
        if self.dest is None:
            if not dry_run:
                out = self.stream or sys.stdout
                out.write(text)
                if not text.endswith("\n"):
                    out.write("\n")
            return None

        if dry_run:
            logger.debug("dry-run: would write %s", self.dest)
            return self.dest

        self.dest.parent.mkdir(parents=True, exist_ok=True)
        self.dest.write_text(text, encoding="utf-8")
        logger.info("wrote %s (%d bytes)", self.dest, len(text.encode("utf-8")))
        return self.dest

    # -- run report --------------------------------------------------------

    def write_report(self, result: FinalResult, path: str | Path | None = None) -> Path:
        """Write run statistics and failures as YAML.

        Defaults to ``<artifact>.report.yaml`` beside the artifact, or
        ``registrar-report.yaml`` when the artifact goes to stdout.
        """
        if path is not None:
            report_path = Path(path)
        elif self.dest is not None:
            report_path = self.dest.with_name(self.dest.name + ".report.yaml")
        else:
            report_path = Path("registrar-report.yaml")

        report = {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "artifact": str(self.dest) if self.dest else "<stdout>",
            "output_format": result.output_format,
            "statistics": result.statistics.model_dump(),
            "failures": [f.model_dump() for f in result.failures],
            "directive_errors": [e.model_dump() for e in result.directive_errors],
        }
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(
            yaml.safe_dump(report, default_flow_style=False, sort_keys=False),
            encoding="utf-8",
        )
        logger.debug("wrote report %s", report_path)
        return report_path
