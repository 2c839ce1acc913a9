from unittest.mock import MagicMock

from cmaks.azure.groups import (
    check_for_group,
    create_group,
    delete_group,
    resource_group_name,
)


def test_resource_group_name() -> None:
    assert resource_group_name("demo") == "demo-group"


def test_check_for_group() -> None:
    client = MagicMock()
    client.resource_groups.check_existence.return_value = True

    assert check_for_group(client, "demo") is True
    client.resource_groups.check_existence.assert_called_once_with("demo-group")


def test_create_group() -> None:
    client = MagicMock()

    create_group(client, "demo", "eastus")

    args = client.resource_groups.create_or_update.call_args[0]
    assert args[0] == "demo-group"
    assert args[1].location == "eastus"


def test_delete_group() -> None:
    client = MagicMock()

    delete_group(client, "demo")

    client.resource_groups.begin_delete.assert_called_once_with("demo-group")
