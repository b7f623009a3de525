"""Publish enrichment telemetry to JSON status files for monitors."""

from __future__ import annotations

import json
import threading
from dataclasses import fields, is_dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict

_DEFAULT_STATUS_DIR = Path("status")


def _normalize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _normalize(val) for key, val in value.items()}
    return value


def _to_dict(obj: Any) -> Dict[str, Any]:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        result = to_dict()
        if isinstance(result, dict):
            return _normalize(result)
    if is_dataclass(obj) and not isinstance(obj, type):
        return _normalize({field.name: getattr(obj, field.name) for field in fields(obj)})
    if isinstance(obj, dict):
        return _normalize(dict(obj))
    raise TypeError(f"Unsupported object type for status serialization: {type(obj)!r}")


def _enhance_metrics(metrics: Dict[str, Any]) -> Dict[str, Any]:
    """Add derived fields to pipeline counters."""
    enrichments = metrics.get("enrichments")
    cache_hits = metrics.get("cache_hits")
    if enrichments and cache_hits is not None:
        metrics["verdict_hit_rate"] = round(cache_hits / enrichments, 4)
    return metrics


class StatusEmitter:
    """Writes enrichment progress to ``<status_dir>/<phase>.json``."""

    def __init__(self, phase: str, status_dir: str | Path | None = None) -> None:
        """Create an emitter for the given phase, creating the directory."""
        self.phase = phase
        self.status_dir = Path(status_dir) if status_dir else _DEFAULT_STATUS_DIR
        self.status_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.status_dir / f"{phase}.json"
        self._lock = threading.Lock()
        self._state: Dict[str, Any] = {
            "phase": phase,
            "last_updated": None,
            "metrics": {},
            "cache": {},
        }

    def record_metrics(self, metrics: Any) -> None:
        """Persist the latest pipeline counters snapshot."""
        with self._lock:
            self._state["metrics"] = _enhance_metrics(_to_dict(metrics))
            self._state["last_updated"] = datetime.now(UTC).isoformat()
            self._write_state()

    def record_cache_stats(self, stats: Any) -> None:
        """Persist a cache snapshot without per-entry metadata."""
        with self._lock:
            payload = _to_dict(stats)
            payload.pop("entries", None)
            self._state["cache"] = payload
            self._state["last_updated"] = datetime.now(UTC).isoformat()
            self._write_state()

    def _write_state(self) -> None:
        tmp_path = self.path.with_suffix(".tmp")
        payload = json.dumps(self._state, separators=(",", ":"))
        tmp_path.write_text(payload, encoding="utf-8")
        tmp_path.replace(self.path)


__all__ = ["StatusEmitter"]
