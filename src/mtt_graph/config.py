"""Run configuration loaded from YAML.

Example::

    policy: canonical-root
    root_id: plant_1
    max_depth: 500
    log_level: INFO
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from mtt_graph.codec import EncodingPolicy

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class MTTConfig:
    """Defaults for encoding and running programs; CLI flags override them."""
    policy: str = EncodingPolicy.STAR.value
    root_id: str | None = None          # canonical-root only
    max_depth: int | None = None        # None = unbounded
    log_level: str = "WARNING"

    @property
    def level(self) -> int:
        return logging.getLevelName(self.log_level)


def config_from_dict(data: dict[str, Any]) -> MTTConfig:
    known = {f.name for f in fields(MTTConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Config: unknown keys: {', '.join(unknown)}")

    config = MTTConfig(**data)
    try:
        config.policy = EncodingPolicy(config.policy).value
    except ValueError:
        raise ValueError(f"Config: unknown encoding policy '{config.policy}'") from None
    if config.max_depth is not None and (not isinstance(config.max_depth, int) or config.max_depth < 0):
        raise ValueError(f"Config: max_depth must be a non-negative integer, got {config.max_depth!r}")
    config.log_level = str(config.log_level).upper()
    if config.log_level not in LOG_LEVELS:
        raise ValueError(f"Config: unknown log level '{config.log_level}'")
    return config


def load_config(path: str | Path) -> MTTConfig:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return MTTConfig()
    if not isinstance(data, dict):
        raise ValueError(f"Config: expected a mapping in {path}, got {type(data).__name__}")
    return config_from_dict(data)
