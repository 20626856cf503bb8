import json
from pathlib import Path

import pytest

from vstfs.config import (
    DEFAULT_TF_PATH,
    VstfsConfig,
    config_to_dict,
    load_config,
    update_root,
)


def test_vstfs_config_defaults() -> None:
    config = VstfsConfig()

    assert config.server_url == ""
    assert config.tf_path == DEFAULT_TF_PATH
    assert config.auth_type == "integrated"
    assert config.root == Path(".")
    assert config.max_output_bytes == 32 * 1024 * 1024


def test_load_config_from_json_uses_camel_case_keys(tmp_path: Path) -> None:
    (tmp_path / ".vstfs.json").write_text(
        json.dumps(
            {
                "serverUrl": "https://dev.azure.com/contoso",
                "project": "Proj",
                "workspace": "ALICE-PC",
                "tfPath": "C:\\tools\\tf.exe",
                "root": "work",
                "serverPath": "$/Proj/Main",
                "authType": "Integrated",
                "timeoutS": 30,
            }
        ),
        encoding="utf-8",
    )

    config = load_config(tmp_path, environ={})

    assert config.server_url == "https://dev.azure.com/contoso"
    assert config.workspace == "ALICE-PC"
    assert config.tf_path == "C:\\tools\\tf.exe"
    assert config.root == (tmp_path / "work").resolve()
    assert config.server_path == "$/Proj/Main"
    assert config.auth_type == "integrated"
    assert config.timeout_s == 30


def test_environment_fills_missing_settings(tmp_path: Path) -> None:
    config_path = tmp_path / ".vstfs.json"
    config_path.write_text(json.dumps({"workspace": "FROM-FILE", "serverUrl": ""}), encoding="utf-8")

    config = load_config(
        config_path,
        environ={
            "VSTFS_WORKSPACE": "FROM-ENV",
            "VSTFS_SERVER_URL": "https://tfs.example.com/tfs/DefaultCollection",
        },
    )

    assert config.workspace == "FROM-FILE"
    assert config.server_url == "https://tfs.example.com/tfs/DefaultCollection"


def test_missing_config_uses_environment_and_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path, environ={"VSTFS_TF_PATH": "/usr/local/bin/tf"})

    assert config.tf_path == "/usr/local/bin/tf"
    assert config.root == tmp_path.resolve()


def test_load_config_from_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "vstfs.yaml"
    config_path.write_text(
        """
serverUrl: https://contoso.visualstudio.com
workspace: BUILD
root: C:\\src\\proj
env:
  TF_LOG: verbose
""",
        encoding="utf-8",
    )

    config = load_config(config_path, environ={})

    assert config.server_url == "https://contoso.visualstudio.com"
    assert config.root == Path("C:\\src\\proj")
    assert config.env == {"TF_LOG": "verbose"}


def test_load_config_from_pyproject(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        """
[project]
name = "unrelated"

[tool.vstfs]
server_url = "https://dev.azure.com/contoso"
server_path = "$/Proj/Main"
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path, environ={})

    assert config.server_url == "https://dev.azure.com/contoso"
    assert config.server_path == "$/Proj/Main"


def test_pyproject_without_tool_table_is_ignored(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "other"\n', encoding="utf-8")

    config = load_config(tmp_path, environ={})

    assert config.server_url == ""


def test_unsupported_auth_type_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / ".vstfs.json"
    config_path.write_text(json.dumps({"authType": "pat"}), encoding="utf-8")

    with pytest.raises(ValueError, match="authType"):
        load_config(config_path, environ={})


def test_invalid_json_is_reported(tmp_path: Path) -> None:
    config_path = tmp_path / ".vstfs.json"
    config_path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError, match=".vstfs.json"):
        load_config(config_path, environ={})


def test_config_to_dict_round_trips_through_json(tmp_path: Path) -> None:
    config = update_root(VstfsConfig(server_url="https://dev.azure.com/contoso"), tmp_path)
    config_path = tmp_path / ".vstfs.json"
    config_path.write_text(json.dumps(config_to_dict(config)), encoding="utf-8")

    loaded = load_config(config_path, environ={})

    assert config_to_dict(config)["serverUrl"] == "https://dev.azure.com/contoso"
    assert loaded.server_url == config.server_url
    assert loaded.root == tmp_path.resolve()
