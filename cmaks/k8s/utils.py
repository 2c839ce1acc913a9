from __future__ import annotations

import os
from io import StringIO
from typing import Any, Callable, Dict, List, Optional, Protocol

from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.client.exceptions import ApiException
from ruamel.yaml import YAML

from cmaks.logger import logger
from cmaks.utils import read_yaml_file


class KubernetesResource(Protocol):
    metadata: Optional[client.V1ObjectMeta]
    kind: Optional[str]


def parse_kubeconfig(kubeconfig: str) -> Dict[str, Any]:
    """
    Parses a kubeconfig YAML (or JSON) document into a plain dictionary.

    Raises:
        ValueError: If the document is empty or not a mapping.
    """
    yaml = YAML(typ="safe")
    data = yaml.load(StringIO(kubeconfig)) if kubeconfig else None
    if not isinstance(data, dict):
        raise ValueError("kubeconfig must be a YAML mapping")
    return data


def load_api_client(cluster_name: str, kubeconfig: str) -> client.ApiClient:
    """
    Builds an API client for a remote cluster from its kubeconfig.

    The client is isolated: the process wide kubernetes configuration is left
    untouched, so concurrent requests against different clusters do not see
    each other's connection details.

    Args:
        cluster_name (str): The name of the cluster, used in error messages.
        kubeconfig (str): The kubeconfig of the cluster.

    Returns:
        client.ApiClient: A client bound to the cluster.
    """
    if not kubeconfig:
        raise ValueError(f"No kubeconfig available for cluster {cluster_name}")
    return k8s_config.new_client_from_config_dict(parse_kubeconfig(kubeconfig))


def apply_resource(
    resource: KubernetesResource,
    api_client: Optional[client.ApiClient] = None,
) -> Any:
    """
    Applies a Kubernetes resource by creating or updating it.

    Args:
        resource (KubernetesResource): The Kubernetes resource to apply.
        api_client (Optional[client.ApiClient]): The client of the target
            cluster. Defaults to the process wide configuration.

    Returns:
        Any: The response from the API call.

    Raises:
        ValueError: If the resource kind is unsupported.
        ApiException: If an error occurs while creating or updating the resource.
    """
    assert resource.metadata and resource.kind

    kind = resource.kind
    namespace = resource.metadata.namespace
    if not namespace:
        raise ValueError("Namespace is required")

    if kind == "Deployment":
        apps_v1_api = client.AppsV1Api(api_client)
        create_method: Callable[..., Any] = apps_v1_api.create_namespaced_deployment
        replace_method: Callable[..., Any] = apps_v1_api.replace_namespaced_deployment
        read_method: Callable[..., Any] = apps_v1_api.read_namespaced_deployment
    elif kind == "Secret":
        core_v1_api = client.CoreV1Api(api_client)
        create_method = core_v1_api.create_namespaced_secret
        replace_method = core_v1_api.replace_namespaced_secret
        read_method = core_v1_api.read_namespaced_secret
    elif kind == "ServiceAccount":
        core_v1_api = client.CoreV1Api(api_client)
        create_method = core_v1_api.create_namespaced_service_account
        replace_method = core_v1_api.patch_namespaced_service_account
        read_method = core_v1_api.read_namespaced_service_account
    else:
        raise ValueError(f"Unsupported kind: {kind}")

    # Try to read (get) the resource; if it exists, replace it, otherwise create it
    try:
        read_method(resource.metadata.name, namespace)
        response = replace_method(resource.metadata.name, namespace, resource)
        logger.info(f"{kind} '{resource.metadata.name}' updated.")
    except ApiException as e:
        if e.status == 404:
            response = create_method(namespace, resource)
            logger.info(f"{kind} '{resource.metadata.name}' created.")
        else:
            raise e
    return response


class KubeconfigMerger:
    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        self.config = config or {}

    def _entries_by_key(self, key: str) -> List[Any]:
        self.config[key] = self.config.get(key) or []
        entries = self.config[key]
        if not isinstance(entries, list):
            raise ValueError(
                f"Tried to insert into {key}, "
                f"which is a {type(entries)} "
                f"not a list."
            )
        return entries

    def _index_same_name(
        self, entries: List[Any], new_entry: Dict[str, Any]
    ) -> Optional[int]:
        if "name" in new_entry:
            name_to_search = new_entry["name"]
            for i, entry in enumerate(entries):
                if "name" in entry and entry["name"] == name_to_search:
                    return i
        return None

    def insert_entry(self, key: str, new_entry: Any) -> None:
        entries = self._entries_by_key(key)
        same_name_index = self._index_same_name(entries, new_entry)
        if same_name_index is None:
            entries.append(new_entry)
        else:
            entries[same_name_index] = new_entry

    def merge(self, new_config: Dict[str, Any]) -> None:
        for cluster in new_config.get("clusters", []):
            self.insert_entry("clusters", cluster)
        for user in new_config.get("users", []):
            self.insert_entry("users", user)
        for context in new_config.get("contexts", []):
            self.insert_entry("contexts", context)

        if "current-context" in new_config:
            self.config["current-context"] = new_config["current-context"]

        for key in new_config.keys():
            if key not in ["clusters", "users", "contexts", "current-context"]:
                self.config[key] = new_config[key]


def update_kubeconfig(
    kubeconfig: Dict[str, Any], path: str = "~/.kube/config"
) -> None:
    """
    Merges the connection details of a cluster into a kubeconfig file.

    Entries with the same name are replaced; everything else in the file is
    kept. The file is created if it does not exist.
    """
    kubeconfig_path = os.path.expanduser(path)
    merger = KubeconfigMerger(read_yaml_file(kubeconfig_path))

    merger.merge(kubeconfig)

    sorted_config = {k: merger.config[k] for k in sorted(merger.config)}

    os.makedirs(os.path.dirname(kubeconfig_path), exist_ok=True)
    with open(kubeconfig_path, "w") as file:
        yaml = YAML()
        yaml.dump(sorted_config, file)
