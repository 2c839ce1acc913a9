from __future__ import annotations

from azure.core.credentials import TokenCredential
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.resource.resources.models import ResourceGroup

from cmaks.constants import RESOURCE_GROUP_SUFFIX
from cmaks.logger import logger


def resource_group_name(cluster_name: str) -> str:
    """
    Returns the name of the resource group that holds a cluster.

    Example:
        >>> resource_group_name("demo")
        'demo-group'
    """
    return f"{cluster_name}{RESOURCE_GROUP_SUFFIX}"


def get_groups_client(
    credential: TokenCredential, subscription_id: str
) -> ResourceManagementClient:
    return ResourceManagementClient(credential, subscription_id)


def check_for_group(client: ResourceManagementClient, cluster_name: str) -> bool:
    return bool(
        client.resource_groups.check_existence(resource_group_name(cluster_name))
    )


def create_group(
    client: ResourceManagementClient, cluster_name: str, location: str
) -> ResourceGroup:
    group_name = resource_group_name(cluster_name)
    logger.info(f"Creating resource group {group_name} in {location}...")
    return client.resource_groups.create_or_update(
        group_name, ResourceGroup(location=location)
    )


def delete_group(client: ResourceManagementClient, cluster_name: str) -> None:
    """
    Starts deleting the resource group of a cluster.

    The deletion is a long running operation on the Azure side. This
    function returns as soon as Azure has accepted it.
    """
    group_name = resource_group_name(cluster_name)
    logger.info(f"Deleting resource group {group_name}...")
    client.resource_groups.begin_delete(group_name)
