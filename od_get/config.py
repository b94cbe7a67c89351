"""YAML config loader."""

import os
from dataclasses import dataclass, field
from typing import Optional

import yaml


@dataclass
class DownloadConfig:
    timeout: int = 120
    user_agent: str = "od-get/0.4 (open directory mirror)"
    max_files: int = 0  # 0 = unlimited
    max_bytes: int = 0  # 0 = unlimited
    levels_per_call: int = 1
    parse_workers: int = 4


@dataclass
class AppConfig:
    url: str = ""
    data_dir: str = "data"
    state_store_path: Optional[str] = None
    log_dir: str = "logs"
    no_download: bool = False
    max_depth: int = 0  # crawl depth, 0 = until no pending directories remain
    download: DownloadConfig = field(default_factory=DownloadConfig)


def load_config(config_path: str = "config.yaml") -> AppConfig:
    """Load config from YAML. A missing file yields the defaults."""
    if not config_path or not os.path.exists(config_path):
        return AppConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    dl_raw = raw.get("download", {}) or {}
    download = DownloadConfig(**{k: v for k, v in dl_raw.items() if k in DownloadConfig.__dataclass_fields__})

    top = {k: v for k, v in raw.items() if k in AppConfig.__dataclass_fields__ and k != "download"}
    return AppConfig(download=download, **top)
