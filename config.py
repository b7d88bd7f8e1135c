from dataclasses import dataclass, fields, asdict
from pathlib import Path
import json

CONFIG_FILE = Path.home() / ".hymn_slides_config.json"

REQUIRED_FOLDERS = ["templates", "output", "schedules", "mail"]


@dataclass
class PipelineConfig:
    """
    Tunables for one run. Font sizes are points; the sizer starts at
    default_font_size and never goes below min_font_size.
    """
    min_font_size: int = 50
    default_font_size: int = 60
    line_spacing: float = 2.0
    # Pause between requests to the same third-party host.
    fetch_delay_ms: int = 1000
    request_timeout_s: float = 20.0
    hymnal_base_url: str = "https://sdahymnals.com/Hymnal/"
    bible_search_url: str = "https://www.biblegateway.com/passage/"
    bible_version: str = "NIV"
    schedule_sheet_keyword: str = "Sabbath Schedule"

    def __post_init__(self):
        if self.min_font_size <= 0 or self.min_font_size > self.default_font_size:
            raise ValueError(
                f"font bounds must satisfy 0 < min_font_size <= default_font_size "
                f"(got {self.min_font_size}, {self.default_font_size})"
            )
        if self.line_spacing <= 0:
            raise ValueError(f"line_spacing must be positive (got {self.line_spacing})")
        if self.fetch_delay_ms < 0:
            raise ValueError(f"fetch_delay_ms must not be negative (got {self.fetch_delay_ms})")

    @property
    def fetch_delay_s(self) -> float:
        return self.fetch_delay_ms / 1000.0

    @classmethod
    def from_dict(cls, data: dict | None) -> "PipelineConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})

    def to_dict(self) -> dict:
        return asdict(self)


def _load_config():
    if not CONFIG_FILE.exists():
        return {}
    with open(CONFIG_FILE, "r", encoding="utf-8") as f:
        return json.load(f)

def _save_config(data):
    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)

def load_data_root():
    return _load_config().get("data_root")

def save_data_root(path):
    data = _load_config()
    data["data_root"] = str(path)
    _save_config(data)

def load_build_prefs():
    cfg = _load_config()
    return {
        "last_template": cfg.get("last_template"),
        "last_output": cfg.get("last_output"),
    }

def save_build_prefs(template_name, output_name):
    data = _load_config()
    data["last_template"] = template_name
    data["last_output"] = output_name
    _save_config(data)

def load_pipeline_config() -> PipelineConfig:
    """Defaults, overridden by the "pipeline" section of the config file."""
    return PipelineConfig.from_dict(_load_config().get("pipeline"))

def save_pipeline_config(cfg: PipelineConfig) -> None:
    data = _load_config()
    data["pipeline"] = cfg.to_dict()
    _save_config(data)

def ensure_data_root_structure(data_root: str | None) -> None:
    """
    Ensures the standard folder structure exists inside data_root.
    Safe to call at startup every time.
    """
    if not data_root:
        return

    root = Path(data_root)
    root.mkdir(parents=True, exist_ok=True)

    for name in REQUIRED_FOLDERS:
        (root / name).mkdir(parents=True, exist_ok=True)
