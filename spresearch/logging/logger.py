from __future__ import annotations

from decimal import Decimal
from pathlib import Path
import json
import sys
from typing import Any, Dict, TextIO, Optional
from ..io.timeutil import utc_now_iso


def _json_default(v: Any) -> Any:
    if isinstance(v, Decimal):
        return format(v, "f")
    if isinstance(v, (set, frozenset)):
        return sorted(v)
    return str(v)


class JsonlLogger:
    """Log de eventos por run: uma linha JSON por evento em logs/run-<run_id>.jsonl."""

    def __init__(self, logs_dir: str, run_id: str, echo: bool = True, stream: Optional[TextIO] = None):
        self.run_id = run_id
        self.echo = echo
        self.stream = stream
        out_dir = Path(logs_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        self.path = out_dir / f"run-{run_id}.jsonl"

    def log(self, event: str, **fields: Any) -> None:
        rec: Dict[str, Any] = {
            "ts": utc_now_iso(),
            "run_id": self.run_id,
            "event": event,
        }
        rec.update(fields)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False, default=_json_default) + "\n")
        if self.echo:
            self._echo(event, fields)

    def _echo(self, event: str, fields: Dict[str, Any]) -> None:
        parts = [event]
        for k, v in fields.items():
            if isinstance(v, (dict, list, tuple)):
                v = json.dumps(v, ensure_ascii=False, default=_json_default)
            elif isinstance(v, Decimal):
                v = format(v, "f")
            parts.append(f"{k}={v}")
        print(" ".join(parts), file=self.stream or sys.stderr)


class NullLogger:
    """Mesmo interface que JsonlLogger, sem escrever nada (testes / uso como biblioteca)."""

    run_id = "null"

    def log(self, event: str, **fields: Any) -> None:
        return None
