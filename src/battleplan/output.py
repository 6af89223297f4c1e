from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


def _gen_path(name: str, data_dir: str | Path) -> Path:
    return Path(data_dir) / "gen" / f"{name}.yml"


def write_yaml(name: str, value: Any, data_dir: str | Path) -> Path:
    path = _gen_path(name, data_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = yaml.safe_dump(value, default_flow_style=False, allow_unicode=True, sort_keys=True)
    path.write_text(text, encoding="utf-8")
    logger.info("%s updated", path)
    return path


def load_yaml(name: str, data_dir: str | Path) -> Any:
    path = _gen_path(name, data_dir)
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)
