from __future__ import annotations

from pathlib import Path

import pytest

from cmaks.config import (
    CONFIG_VERSION,
    AutoscalerConfig,
    ServerConfig,
    generate_yaml,
    load_config,
    parse_yaml,
)
from cmaks.constants import AUTOSCALER_IMAGE


def test_default_config() -> None:
    config = ServerConfig()
    assert config.version == CONFIG_VERSION
    assert config.host == "0.0.0.0"
    assert config.port == 9020
    assert config.logLevel == "INFO"
    assert config.autoscaler.image == AUTOSCALER_IMAGE
    assert config.autoscaler.namespace == "kube-system"
    assert config.autoscaler.secretName == "cluster-autoscaler-azure"


def test_log_level_is_normalized() -> None:
    assert ServerConfig(logLevel="debug").logLevel == "DEBUG"


def test_invalid_log_level() -> None:
    with pytest.raises(ValueError, match="logLevel must be one of"):
        ServerConfig(logLevel="verbose")


def test_invalid_port() -> None:
    with pytest.raises(ValueError, match="port must be between 1 and 65535"):
        ServerConfig(port=70000)


def test_invalid_version_format() -> None:
    with pytest.raises(ValueError, match='version must be in the format "x.x"'):
        ServerConfig(version="1")


def test_extra_fields_are_rejected() -> None:
    with pytest.raises(ValueError):
        AutoscalerConfig(image="foo", replicas=2)  # type: ignore[call-arg]


def test_generate_yaml() -> None:
    config = ServerConfig(port=8080, autoscaler=AutoscalerConfig(image="my/autoscaler:1"))
    yaml_str = generate_yaml(config)

    assert "version: '1.0'" in yaml_str
    assert "port: 8080" in yaml_str
    assert "image: my/autoscaler:1" in yaml_str


def test_parse_yaml() -> None:
    yaml_str = """
version: "1.0"
host: 127.0.0.1
port: 8080
logLevel: warning
autoscaler:
  image: my/autoscaler:1
  namespace: autoscaling
"""
    config = parse_yaml(yaml_str)

    assert config.host == "127.0.0.1"
    assert config.port == 8080
    assert config.logLevel == "WARNING"
    assert config.autoscaler.image == "my/autoscaler:1"
    assert config.autoscaler.namespace == "autoscaling"
    assert config.autoscaler.secretName == "cluster-autoscaler-azure"


def test_parse_yaml_round_trip() -> None:
    config = ServerConfig(host="127.0.0.1", logLevel="ERROR")
    assert parse_yaml(generate_yaml(config)) == config


def test_parse_yaml_missing_version() -> None:
    with pytest.raises(ValueError, match="The 'version' field is missing"):
        parse_yaml("port: 8080\n")


def test_parse_yaml_unsupported_versions() -> None:
    with pytest.raises(ValueError, match="This server supports versions up to 1.0"):
        parse_yaml('version: "1.1"\n')

    with pytest.raises(ValueError, match="Your current server is too old"):
        parse_yaml('version: "2.0"\n')

    with pytest.raises(ValueError, match="starting from 1.0"):
        parse_yaml('version: "0.9"\n')


def test_load_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CMAKS_CONFIG", raising=False)
    assert load_config() == ServerConfig()


def test_load_config_missing_file(tmp_path: Path) -> None:
    assert load_config(str(tmp_path / "missing.yaml")) == ServerConfig()


def test_load_config_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "cmaks.yaml"
    path.write_text('version: "1.0"\nport: 9100\n')
    monkeypatch.setenv("CMAKS_CONFIG", str(path))

    assert load_config().port == 9100
