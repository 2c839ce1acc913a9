import os
from pathlib import Path

from cmaks.utils import cluster_id, read_yaml_file, to_yaml


def test_cluster_id() -> None:
    assert cluster_id("sub1", "demo") == (
        "/subscriptions/sub1/resourcegroups/demo-group/providers/"
        "Microsoft.ContainerService/managedClusters/demo"
    )
    assert cluster_id("", "x").startswith("/subscriptions//resourcegroups/x-group/")


def test_to_yaml() -> None:
    obj = {"key": "value"}
    yaml_str = to_yaml(obj)
    assert yaml_str == "key: value\n"

    obj1 = {"key": {"nested_key": "nested_value"}}
    yaml_str = to_yaml(obj1)
    assert yaml_str == "key:\n  nested_key: nested_value\n"

    obj2 = {"key": ["value1", "value2"]}
    yaml_str = to_yaml(obj2)
    assert yaml_str == "key:\n  - value1\n  - value2\n"


def test_read_yaml_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("version: '1.0'\nport: 8080\n")

    assert read_yaml_file(str(path)) == {"version": "1.0", "port": 8080}


def test_read_yaml_file_missing(tmp_path: Path) -> None:
    assert read_yaml_file(os.path.join(str(tmp_path), "missing.yaml")) == {}


def test_read_yaml_file_empty(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert read_yaml_file(str(path)) == {}
