"""Lightweight timing telemetry for page extraction batches.

Usage:
    tel = Telemetry()

    with tel.span("batch"):
        for page in pages:
            with tel.span(f"page-{page}"):
                extract(page)

    print(tel.summary())

Nesting follows the current context, so spans opened from worker threads or
concurrent asyncio tasks nest under whatever span was open when that task
started rather than under each other.
"""
import threading
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Tuple

_current_path: ContextVar[Tuple[str, ...]] = ContextVar("telemetry_path", default=())


class Telemetry:
    """Collects named timing spans for one run."""

    def __init__(self):
        self.spans: List[Dict] = []
        self._lock = threading.Lock()
        self._start_time = time.monotonic()

    @contextmanager
    def span(self, name: str) -> Iterator[Dict]:
        """Time a named block; the yielded dict gains 'duration' on exit."""
        path = _current_path.get()
        parent = "/".join(path) if path else None
        entry = {
            "name": name,
            "full_name": f"{parent}/{name}" if parent else name,
            "parent": parent,
            "start": time.monotonic(),
            "end": None,
            "duration": None,
        }
        with self._lock:
            self.spans.append(entry)
        token = _current_path.set(path + (name,))
        try:
            yield entry
        finally:
            _current_path.reset(token)
            entry["end"] = time.monotonic()
            entry["duration"] = entry["end"] - entry["start"]

    def total_seconds(self) -> float:
        """Wall-clock time since telemetry was created."""
        return time.monotonic() - self._start_time

    def durations(self, prefix: str = "") -> Dict[str, float]:
        """Finished span durations keyed by full name, optionally filtered by name prefix."""
        return {
            s["full_name"]: s["duration"]
            for s in self.spans
            if s["duration"] is not None and s["name"].startswith(prefix)
        }

    def summary(self) -> str:
        """Return formatted timing table."""
        total = self.total_seconds()
        finished = [s for s in self.spans if s["duration"] is not None]
        if not finished:
            return "No timing data."

        lines = ["", "TIMING BREAKDOWN", "-" * 52]
        lines.append(f"{'Stage':<30} {'Duration':>9} {'% Total':>9}")
        lines.append("-" * 52)

        for span in finished:
            dur = span["duration"]
            pct = (dur / total) * 100 if total else 0.0
            depth = span["full_name"].count("/")
            name = f"{'  ' * depth}{span['name']}"
            lines.append(f"{name:<30} {dur:>8.1f}s {pct:>8.1f}%")

        lines.append("-" * 52)
        lines.append(f"{'Total':<30} {total:>8.1f}s")
        lines.append("")
        return "\n".join(lines)

    def to_dict(self) -> Dict:
        """Return JSON-serializable timing data as a span tree."""
        def build_tree(parent: Optional[str]) -> List[Dict]:
            result = []
            for s in self.spans:
                if s["parent"] != parent:
                    continue
                entry = {
                    "name": s["name"],
                    "duration_seconds": round(s["duration"], 3) if s["duration"] is not None else None,
                }
                nested = build_tree(s["full_name"])
                if nested:
                    entry["children"] = nested
                result.append(entry)
            return result

        return {
            "total_seconds": round(self.total_seconds(), 3),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "spans": build_tree(None),
        }
