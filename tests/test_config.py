from pathlib import Path

import pytest

from devsecguard.config import ScannerConfig, load_config, token_from_environment
from devsecguard.runners import audit


def test_defaults_without_file(tmp_path: Path):
    config = load_config(tmp_path / "missing.yml", environ={})
    assert config == ScannerConfig()
    assert config.audit_ok_exit_codes == audit.DEFAULT_OK_EXIT_CODES


def test_yaml_values_are_coerced(tmp_path: Path):
    path = tmp_path / "devsecguard.yml"
    path.write_text(
        """
adapter_timeout: 30
history: false
history_depth: 0
secret_scan_command: trufflehog filesystem {checkout} --json
audit_command: [yarn, audit, --json]
audit_ok_exit_codes: 0
ignore_file: ignore.yml
unknown_key: 1
"""
    )

    config = load_config(path, environ={})

    assert config.adapter_timeout == 30.0
    assert config.history is False
    assert config.history_depth is None
    assert config.secret_scan_command == ("trufflehog", "filesystem", "{checkout}", "--json")
    assert config.audit_command == ("yarn", "audit", "--json")
    assert config.audit_ok_exit_codes == (0,)
    assert config.ignore_file == tmp_path / "ignore.yml"


def test_environment_overrides(tmp_path: Path):
    path = tmp_path / "devsecguard.yml"
    path.write_text("adapter_timeout: 30\n")
    config = load_config(path, environ={"DEVSECGUARD_ADAPTER_TIMEOUT": "5", "DEVSECGUARD_NO_CLONE": "true"})
    assert config.adapter_timeout == 5.0
    assert config.clone is False

    untouched = load_config(path, environ={"DEVSECGUARD_ADAPTER_TIMEOUT": "soon"})
    assert untouched.adapter_timeout == 30.0


def test_non_mapping_config_is_rejected(tmp_path: Path):
    path = tmp_path / "devsecguard.yml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(path, environ={})


def test_token_from_environment():
    assert token_from_environment({"GITHUB_TOKEN": "ghp_x"}) == "ghp_x"
    assert token_from_environment({"GITHUB_TOKEN": ""}) is None
    assert token_from_environment({}) is None
