"""Configuration file loading for visitorintel.toml."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "visitorintel.toml"


def _candidate_paths() -> list[Path]:
    # config/ directory first, then the current directory
    return [Path("config") / CONFIG_FILE_NAME, Path(CONFIG_FILE_NAME)]


def load_config_file(path: Optional[Path] = None) -> dict[str, dict[str, Any]]:
    """Load the ``[enrichment]`` and ``[database]`` tables from the config file.

    Args:
        path: Explicit file to read; when omitted ``config/visitorintel.toml``
            and then ``visitorintel.toml`` are tried

    Returns:
        Dict with ``enrichment`` and ``database`` keys (empty dicts when the
        file or a table is missing, or the file cannot be parsed)
    """
    config: dict[str, dict[str, Any]] = {"enrichment": {}, "database": {}}

    candidates = [path] if path is not None else _candidate_paths()
    config_file = next((candidate for candidate in candidates if candidate.exists()), None)
    if config_file is None:
        if path is not None:
            logger.warning("Config file %s not found. Using defaults.", path)
        return config

    try:
        with config_file.open("rb") as handle:
            data = tomllib.load(handle)
    except OSError as e:
        logger.debug("Could not read %s: %s", config_file, e)
        return config
    except tomllib.TOMLDecodeError as e:
        logger.warning("Failed to parse %s: %s. Using defaults.", config_file, e)
        return config

    for section in config:
        table = data.get(section, {})
        if isinstance(table, dict):
            config[section] = dict(table)
        else:
            logger.warning("Ignoring [%s] in %s: expected a table", section, config_file)

    # "env:NAME" values resolve to environment variables, for secrets in DB URLs
    db_url = config["database"].get("url")
    if isinstance(db_url, str) and db_url.startswith("env:"):
        config["database"]["url"] = os.getenv(db_url[4:])

    logger.debug("Loaded configuration from %s", config_file)
    return config


__all__ = ["CONFIG_FILE_NAME", "load_config_file"]
