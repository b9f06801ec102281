"""Atomic JSON export of query outcomes and batch summaries."""

from __future__ import annotations

import json
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from tribunal_scraper.lib.config import Config
from tribunal_scraper.lib.logging_config import get_logger
from tribunal_scraper.models.outcome import BatchSummary, ExtractionOutcome

logger = get_logger()

_SANITIZE_RE = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_name(name: str) -> str:
    s = _SANITIZE_RE.sub("-", name or "")
    s = re.sub(r"-+", "-", s).strip("-_")
    return s or "query"


def unique_with_suffix(path: Path, max_attempts: int = 100) -> Path:
    if not path.exists():
        return path
    for i in range(1, max_attempts + 1):
        candidate = path.with_name(f"{path.stem}-{i}{path.suffix}")
        if not candidate.exists():
            return candidate
    raise FileExistsError(f"No available filename after {max_attempts} attempts: {path}")


def write_json_atomic(data: dict, final_path: Path, retries: int) -> Path:
    """Write through a temp file in the same directory and rename into place."""
    last_exc: Optional[Exception] = None
    for attempt in range(1, retries + 1):
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=str(final_path.parent), suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, final_path)
            return final_path
        except OSError as exc:
            last_exc = exc
            logger.warning(f"Write attempt {attempt}/{retries} for {final_path} failed: {exc}")
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
    raise last_exc or RuntimeError(f"Failed to write {final_path}")


class ExportService:
    """Writes one file per query outcome under ``<output>/outcomes/<YYYY>/``."""

    def __init__(self, output_dir: Optional[str] = None):
        self.output_dir = Path(output_dir or Config.get_output_dir())
        self.retries = Config.get_export_write_retries()

    def _stamp(self) -> str:
        return datetime.now(timezone.utc).strftime("%Y%m%d")

    def export_outcome(self, outcome: ExtractionOutcome) -> str:
        year = datetime.now(timezone.utc).strftime("%Y")
        dir_path = self.output_dir / "outcomes" / year
        dir_path.mkdir(parents=True, exist_ok=True)

        q = outcome.query
        parts = [q.bench, q.case_type or "", q.case_number or "", q.year or ""] if q else ["query"]
        base = sanitize_name("-".join(p for p in parts if p))
        final_path = unique_with_suffix(dir_path / f"{base}-{self._stamp()}.json")
        write_json_atomic(outcome.to_dict(), final_path, self.retries)
        logger.info(f"Exported outcome to {final_path}")
        return str(final_path)

    def export_summary(self, summary: BatchSummary) -> str:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        final_path = unique_with_suffix(self.output_dir / f"batch-summary-{self._stamp()}.json")
        write_json_atomic(summary.to_dict(), final_path, self.retries)
        logger.info(f"Exported batch summary to {final_path}")
        return str(final_path)
