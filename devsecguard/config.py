"""Scanner configuration loaded from YAML with environment overrides."""

from __future__ import annotations

import logging
import os
import pathlib
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from devsecguard.runners import audit, secrets
from devsecguard.runners.base import DEFAULT_TIMEOUT

_LOG = logging.getLogger(__name__)

ENV_TIMEOUT = "DEVSECGUARD_ADAPTER_TIMEOUT"
ENV_NO_CLONE = "DEVSECGUARD_NO_CLONE"
ENV_TOKEN = "GITHUB_TOKEN"

DEFAULT_CLONE_TIMEOUT = 300.0


@dataclass
class ScannerConfig:
    adapter_timeout: float = DEFAULT_TIMEOUT
    clone_timeout: float = DEFAULT_CLONE_TIMEOUT
    clone: bool = True
    history: bool = True
    history_depth: Optional[int] = 100
    secret_scan_command: Tuple[str, ...] = secrets.DEFAULT_COMMAND
    audit_command: Tuple[str, ...] = audit.DEFAULT_COMMAND
    audit_ok_exit_codes: Tuple[int, ...] = audit.DEFAULT_OK_EXIT_CODES
    manifest_path: str = audit.DEFAULT_MANIFEST
    ignore_file: Optional[pathlib.Path] = None


def load_config(path: Optional[pathlib.Path] = None, environ: Optional[Mapping[str, str]] = None) -> ScannerConfig:
    """Build a config from an optional YAML file, then apply environment overrides."""

    config = ScannerConfig()
    if path is not None and path.exists():
        data = yaml.safe_load(path.read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")
        _apply(config, data, base=path.parent)
    return apply_environment(config, os.environ if environ is None else environ)


def apply_environment(config: ScannerConfig, environ: Mapping[str, str]) -> ScannerConfig:
    timeout = environ.get(ENV_TIMEOUT)
    if timeout:
        try:
            config.adapter_timeout = float(timeout)
        except ValueError:
            _LOG.warning("Ignoring non-numeric %s=%r", ENV_TIMEOUT, timeout)
    if environ.get(ENV_NO_CLONE, "").lower() in {"1", "true", "yes"}:
        config.clone = False
    return config


def token_from_environment(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    environ = os.environ if environ is None else environ
    return environ.get(ENV_TOKEN) or None


def _apply(config: ScannerConfig, data: Dict[str, Any], base: pathlib.Path) -> None:
    known = {item.name for item in fields(config)}
    for key, value in data.items():
        if key not in known:
            _LOG.warning("Ignoring unknown config key %r", key)
            continue
        if key in {"secret_scan_command", "audit_command"}:
            value = tuple(str(part) for part in (value if isinstance(value, list) else str(value).split()))
        elif key == "audit_ok_exit_codes":
            value = tuple(int(code) for code in (value if isinstance(value, list) else [value]))
        elif key in {"adapter_timeout", "clone_timeout"}:
            value = float(value)
        elif key == "history_depth":
            value = int(value) if value else None
        elif key in {"clone", "history"}:
            value = bool(value)
        elif key == "ignore_file":
            value = (base / str(value)) if value else None
        setattr(config, key, value)
