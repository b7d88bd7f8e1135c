"""
Build diagnostics.

Turn on with HS_DEBUG=1. Each deck then gets a <deck>_debug.log (timestamped
lines) and a <deck>_debug.json (what every source produced and what went on
each generated slide) next to it. Fine-grained switches:

  HS_DEBUG_JSON=0   no json report
  HS_DEBUG_PRINT=0  do not echo to the console
  HS_DEBUG_LOG=0    no text log

Warnings are printed whether or not debugging is on.
"""
from __future__ import annotations

import json
import os
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

_TRUE_WORDS = {"1", "true", "yes", "y", "on"}

# env var -> DebugSettings field (HS_DEBUG itself is handled separately)
_ENV_SWITCHES = {
    "HS_DEBUG_JSON": "write_json_report",
    "HS_DEBUG_PRINT": "print_console",
    "HS_DEBUG_LOG": "write_text_log",
}


def _truthy(v: str | None) -> bool:
    return v is not None and v.strip().lower() in _TRUE_WORDS


@dataclass
class DebugSettings:
    enabled: bool = False
    write_json_report: bool = True
    print_console: bool = True
    write_text_log: bool = True

    @staticmethod
    def from_env() -> "DebugSettings":
        s = DebugSettings(enabled=_truthy(os.getenv("HS_DEBUG")))
        for var, attr in _ENV_SWITCHES.items():
            if os.getenv(var) is not None:
                setattr(s, attr, _truthy(os.getenv(var)))
        return s


@dataclass
class RunReport:
    kind: str
    template_path: str
    output_path: str
    started_at: str
    # "hymn 108" / "scripture" / "song" -> what that source produced
    sources: Dict[str, Any] = field(default_factory=dict)
    slides: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class DebugRecorder:
    settings: DebugSettings
    output_path: Optional[Path] = None
    lines: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    runs: List[RunReport] = field(default_factory=list)

    @staticmethod
    def _stamp() -> str:
        return time.strftime("%Y-%m-%d %H:%M:%S")

    @property
    def current(self) -> Optional[RunReport]:
        if not self.settings.enabled or not self.runs:
            return None
        return self.runs[-1]

    def log(self, msg: str) -> None:
        if not self.settings.enabled:
            return
        line = f"[{self._stamp()}] {msg}"
        self.lines.append(line)
        if self.settings.print_console:
            print(line)

    def warn(self, msg: str) -> None:
        """Degraded features and skipped markers."""
        self.warnings.append(msg)
        if self.current is not None:
            self.current.warnings.append(msg)
        if self.settings.enabled:
            self.log(f"[WARN] {msg}")
        else:
            print(f"WARNING: {msg}")

    def start_run(self, run_kind: str, template_path: str, output_path: str) -> None:
        if not self.settings.enabled:
            return
        self.output_path = Path(output_path)
        self.runs.append(RunReport(run_kind, template_path, output_path, self._stamp()))
        self.log(f"DEBUG ENABLED ({run_kind})")
        self.log(f"Template: {template_path}")
        self.log(f"Output:   {output_path}")

    def add_source_record(self, name: str, rec: Dict[str, Any]) -> None:
        if self.current is not None:
            self.current.sources[name] = rec

    def add_slide_record(self, slide_rec: Dict[str, Any]) -> None:
        if self.current is not None:
            self.current.slides.append(slide_rec)

    def flush(self) -> None:
        if not self.settings.enabled or not self.output_path:
            return
        out_dir = self.output_path.parent
        stem = self.output_path.stem
        out_dir.mkdir(parents=True, exist_ok=True)

        if self.settings.write_text_log:
            (out_dir / f"{stem}_debug.log").write_text("\n".join(self.lines) + "\n", encoding="utf-8")

        if self.settings.write_json_report:
            report = {"version": 2, "runs": [asdict(r) for r in self.runs]}
            (out_dir / f"{stem}_debug.json").write_text(json.dumps(report, indent=2), encoding="utf-8")
