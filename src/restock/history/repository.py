"""JSON persistence for the purchase history document."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from restock.config import get_settings
from restock.models.history import PurchaseHistoryDocument, PurchaseRecord

logger = logging.getLogger(__name__)


class HistoryFileError(RuntimeError):
    """Raised when the history document exists but cannot be read."""


def _resolve(path: Optional[Path]) -> Path:
    return path or get_settings().history_path


def load_history(path: Optional[Path] = None) -> PurchaseHistoryDocument:
    """Read the history document; a missing file yields an empty history."""

    target = _resolve(path)
    try:
        raw = target.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.info("No purchase history at %s; starting empty", target)
        return PurchaseHistoryDocument()

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HistoryFileError(f"Purchase history at {target} is malformed: {exc}") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("records", []), list):
        raise HistoryFileError(f"Purchase history at {target} is malformed: expected a records list")

    records, skipped = _valid_records(payload.get("records", []))
    if skipped:
        logger.warning("Skipped %s malformed purchase record(s) in %s", skipped, target)
    try:
        return PurchaseHistoryDocument.model_validate({**payload, "records": records})
    except ValidationError as exc:
        raise HistoryFileError(f"Purchase history at {target} is malformed: {exc}") from exc


def _valid_records(entries: list) -> tuple[list[PurchaseRecord], int]:
    # A bad line drops only itself; the rest of the history stays usable.
    records: list[PurchaseRecord] = []
    skipped = 0
    for entry in entries:
        try:
            records.append(PurchaseRecord.model_validate(entry))
        except ValidationError as exc:
            skipped += 1
            logger.debug("Dropping purchase record %r: %s", entry, exc)
    return records, skipped


def save_history(document: PurchaseHistoryDocument, path: Optional[Path] = None) -> Path:
    """Rewrite the history document wholesale via an atomic replace."""

    target = _resolve(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = document.model_dump(mode="json", by_alias=True)

    fd, tmp_name = tempfile.mkstemp(prefix=".history-", suffix=".json", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        os.replace(tmp_name, target)
    except Exception:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Saved %s purchase record(s) to %s", len(document.records), target)
    return target


__all__ = ["HistoryFileError", "load_history", "save_history"]
