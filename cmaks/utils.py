from __future__ import annotations

from io import StringIO
from typing import Any, Dict

from ruamel.yaml import YAML

from cmaks.constants import MANAGED_CLUSTER_PROVIDER, RESOURCE_GROUP_SUFFIX


def cluster_id(subscription_id: str, cluster_name: str) -> str:
    """
    Builds the Azure resource id of a managed cluster.

    Args:
        subscription_id (str): The subscription the cluster lives in.
        cluster_name (str): The name of the cluster.

    Returns:
        str: The resource id.

    Example:
        >>> cluster_id("sub1", "demo")
        '/subscriptions/sub1/resourcegroups/demo-group/providers/Microsoft.ContainerService/managedClusters/demo'
    """
    return (
        f"/subscriptions/{subscription_id}"
        f"/resourcegroups/{cluster_name}{RESOURCE_GROUP_SUFFIX}"
        f"/providers/{MANAGED_CLUSTER_PROVIDER}/{cluster_name}"
    )


def to_yaml(obj: Dict[Any, Any]) -> str:
    """
    Converts an dictionary to a YAML string.

    Args:
        obj (dict): The dictionary to be converted.

    Returns:
        str: The YAML string.
    """
    yaml = YAML()
    yaml.indent(mapping=2, sequence=4, offset=2)
    buf = StringIO()
    yaml.dump(obj, buf)
    return buf.getvalue()


def read_yaml_file(path: str) -> Dict[str, Any]:
    """
    Reads a YAML file and returns its contents as a dictionary.

    If the file does not exist, it returns an empty dictionary.

    Args:
        path (str): The path to the YAML file.

    Returns:
        Dict[str, Any]: The contents of the YAML file as a dictionary, or an empty dictionary if the file does not exist.
    """
    yaml = YAML()
    try:
        with open(path, "r") as file:
            data = yaml.load(file)
    except FileNotFoundError:
        data = {}
    return data or {}
