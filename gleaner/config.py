"""Configuration loading.

A configuration is a YAML document with a ``writer`` section, a ``global``
section and a list of ``scrapers``. Writer settings and the user agent can be
overridden with environment variables so credentials stay out of the file:

- GLEANER_WRITER_TYPE
- GLEANER_WRITER_URI
- GLEANER_WRITER_USER
- GLEANER_WRITER_PASSWORD
- GLEANER_USER_AGENT
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from gleaner.common.exceptions import ConfigurationError
from gleaner.data_types import Config

logger = logging.getLogger(__name__)

_WRITER_ENV = {
    "GLEANER_WRITER_TYPE": "type",
    "GLEANER_WRITER_URI": "uri",
    "GLEANER_WRITER_USER": "user",
    "GLEANER_WRITER_PASSWORD": "password",
}


def apply_env_overrides(
    raw: dict[str, Any], environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Overlay environment settings on a raw configuration mapping."""
    env = os.environ if environ is None else environ

    writer = dict(raw.get("writer") or {})
    for var, key in _WRITER_ENV.items():
        if env.get(var):
            writer[key] = env[var]
    if writer:
        raw["writer"] = writer

    if env.get("GLEANER_USER_AGENT"):
        global_section = dict(raw.get("global") or {})
        global_section["user-agent"] = env["GLEANER_USER_AGENT"]
        raw["global"] = global_section
    return raw


def parse_config(
    text: str, environ: Mapping[str, str] | None = None
) -> Config:
    """Parse and validate a YAML configuration document.

    Raises:
        ConfigurationError: If the YAML is malformed or does not validate.
    """
    try:
        raw = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigurationError("configuration must be a mapping")

    try:
        return Config.model_validate(apply_env_overrides(raw, environ))
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


def load_config(
    path: Path | str, environ: Mapping[str, str] | None = None
) -> Config:
    """Load a configuration file.

    Raises:
        ConfigurationError: If the file cannot be read or is invalid.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot read {path}: {e}") from e
    config = parse_config(text, environ)
    logger.debug(f"loaded {len(config.scrapers)} scrapers from {path}")
    return config
