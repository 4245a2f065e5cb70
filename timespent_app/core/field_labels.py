"""Load report header labels from YAML (with fallbacks)."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .config import DEFAULT_FIELD_LABELS, KEY_LABEL

logger = logging.getLogger(__name__)

# Keyed by resolved path and modification time, so edited files are re-read
_CACHE: dict[tuple[str, int], dict[str, str]] = {}


def load_field_labels(path: str | Path | None = None) -> dict[str, str]:
    """Default labels overridden by the ``labels:`` mapping of a YAML file.

    Example file::

        labels:
          summary: 概要
          timespent: 消費時間
    """
    if path is None:
        return dict(DEFAULT_FIELD_LABELS)
    yaml_path = Path(path)
    labels = dict(DEFAULT_FIELD_LABELS)
    try:
        cache_key = (str(yaml_path.resolve()), yaml_path.stat().st_mtime_ns)
    except OSError:
        logger.warning("Label file %s not found; using default labels", yaml_path)
        return labels
    if cache_key in _CACHE:
        return dict(_CACHE[cache_key])
    try:
        data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read label file %s: %s", yaml_path, exc)
        return labels
    overrides = data.get("labels", {}) if isinstance(data, dict) else {}
    if not isinstance(overrides, dict):
        logger.warning("Label file %s: 'labels' must be a mapping", yaml_path)
        return labels
    labels.update({str(k).lower(): str(v) for k, v in overrides.items() if v is not None})
    _CACHE[cache_key] = labels
    return dict(labels)


def header_labels(fields: list[str], labels: dict[str, str] | None = None) -> list[str]:
    table = DEFAULT_FIELD_LABELS if labels is None else labels
    return [table.get("key", KEY_LABEL), *(table.get(name.lower(), name) for name in fields)]
