"""Config file loading, options and credentials"""

from pathlib import Path

import pytest
import yaml

from traffical_sdk import config as config_module
from traffical_sdk.config import (
    ClientOptions,
    dump_config,
    find_config_path,
    load_config_file,
    load_management_key,
    read_template,
    save_config_file,
)
from traffical_sdk.exceptions import ConfigFileError, CredentialsError, ErrorCodes


def test_load_config_file(config_file: Path):
    config = load_config_file(config_file)
    assert config.project.id == "proj_1"
    assert config.parameters["ui.button.color"].default == "blue"
    assert config.events["purchase"].unit == "USD"


def test_load_missing_file(tmp_path: Path):
    with pytest.raises(ConfigFileError) as exc_info:
        load_config_file(tmp_path / "missing.yaml")
    assert exc_info.value.code == ErrorCodes.CONFIG_NOT_FOUND


def test_load_invalid_yaml(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("project: {id: [unclosed\n")
    with pytest.raises(ConfigFileError) as exc_info:
        load_config_file(path)
    assert exc_info.value.code == ErrorCodes.CONFIG_PARSE


def test_load_non_mapping(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigFileError) as exc_info:
        load_config_file(path)
    assert exc_info.value.code == ErrorCodes.CONFIG_VALIDATION


def test_load_validation_error(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "project: {id: p, orgId: o}\n"
        "parameters:\n  a.b: {type: boolean, default: maybe}\n"
    )
    with pytest.raises(ConfigFileError) as exc_info:
        load_config_file(path)
    assert exc_info.value.code == ErrorCodes.CONFIG_VALIDATION


def test_find_config_path_prefers_dot_traffical(tmp_path: Path, config_file: Path):
    (tmp_path / "config.yaml").write_text("unused: true\n")
    assert find_config_path(tmp_path) == config_file


def test_find_config_path_falls_back_to_root(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("project: {id: p, orgId: o}\n")
    assert find_config_path(tmp_path) == path


def test_find_config_path_missing(tmp_path: Path):
    with pytest.raises(ConfigFileError) as exc_info:
        find_config_path(tmp_path)
    assert "traffical init" in str(exc_info.value)


def test_save_and_reload(tmp_path: Path, config_file: Path):
    config = load_config_file(config_file)
    out = save_config_file(config, tmp_path / "nested" / "config.yaml")
    assert load_config_file(out) == config
    data = yaml.safe_load(dump_config(config))
    assert "description" not in data["parameters"]["pricing.discount"]


def test_options_from_env(monkeypatch):
    monkeypatch.setenv("TRAFFICAL_API_KEY", "sk_env")
    monkeypatch.setenv("TRAFFICAL_ENV", "staging")
    monkeypatch.setenv("TRAFFICAL_API_BASE", "https://sdk.example")
    monkeypatch.delenv("TRAFFICAL_PROJECT_ID", raising=False)
    options = ClientOptions.from_env(batch_size=10)
    assert options.api_key == "sk_env"
    assert options.env == "staging"
    assert options.base_url == "https://sdk.example"
    assert options.project_id is None
    assert options.batch_size == 10


def test_require_api_key():
    with pytest.raises(CredentialsError):
        ClientOptions().require_api_key()
    assert ClientOptions(api_key="k").require_api_key() == "k"


def test_management_key_from_env(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("TRAFFICAL_MANAGEMENT_KEY", "mk_env")
    assert load_management_key(tmp_path / "credentials") == "mk_env"


def test_management_key_from_credentials_file(monkeypatch, tmp_path: Path):
    monkeypatch.delenv("TRAFFICAL_MANAGEMENT_KEY", raising=False)
    credentials = tmp_path / "credentials"
    credentials.write_text("managementKey: mk_file\n")
    monkeypatch.setattr(config_module, "CREDENTIALS_PATH", credentials)
    assert load_management_key() == "mk_file"


def test_management_key_missing(monkeypatch, tmp_path: Path):
    monkeypatch.delenv("TRAFFICAL_MANAGEMENT_KEY", raising=False)
    with pytest.raises(CredentialsError) as exc_info:
        load_management_key(tmp_path / "credentials")
    assert exc_info.value.code == ErrorCodes.MISSING_CREDENTIALS


def test_templates_are_packaged():
    assert "__PROJECT_ID__" in read_template("config.yaml")
    assert "## CLI Reference" in read_template("SKILL.md")
