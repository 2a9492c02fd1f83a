"""Adapter configuration

Config files are plain JSON. Exchange credentials live in a section named
after the exchange slug and may be overridden from the environment
(``BTCE_KEY`` / ``BTCE_SECRET`` for the ``btce`` section)::

    {
        "btce": {"key": "...", "secret": "..."},
        "log_level": "INFO",
        "log_path": "logs/btce_adapter.log"
    }
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union


def load_config(config_path: Union[str, Path]) -> dict:
    """Load configuration from JSON file.

    Args:
        config_path: Path to config JSON file

    Returns:
        Dictionary with configuration parameters
    """
    with open(config_path, 'r') as f:
        return json.load(f)


def exchange_config(config: dict, exchange: str = "btce", environ: Optional[dict] = None) -> dict:
    """Return the credential section for *exchange*, with environment overrides applied.

    Args:
        config: Full configuration dictionary
        exchange: Section name / exchange slug
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        New dictionary with optional ``key`` and ``secret`` entries
    """
    environ = os.environ if environ is None else environ
    section = dict(config.get(exchange) or {})

    prefix = exchange.upper()
    for name in ("key", "secret"):
        value = environ.get(f"{prefix}_{name.upper()}")
        if value:
            section[name] = value
    return section


def log_level(config: dict) -> int:
    return getattr(logging, str(config.get("log_level", "INFO")).upper(), logging.INFO)
