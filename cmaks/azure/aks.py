from __future__ import annotations

from functools import cached_property
from typing import Dict, List, Optional

from azure.core.credentials import TokenCredential
from azure.core.exceptions import ResourceNotFoundError
from azure.mgmt.containerservice import ContainerServiceClient
from azure.mgmt.containerservice.models import (
    AgentPool,
    ManagedCluster,
    ManagedClusterAgentPoolProfile,
    ManagedClusterServicePrincipalProfile,
)

from cmaks.azure.groups import resource_group_name
from cmaks.logger import logger


class AKS:
    """
    Thin wrapper around the AKS management API of one subscription.

    Every mutating call starts a long running operation and returns the
    provisioning state of the cluster as Azure reports it right after the
    operation has been accepted. Callers are not blocked until the operation
    completes.
    """

    def __init__(self, credential: TokenCredential, subscription_id: str) -> None:
        self.credential = credential
        self.subscription_id = subscription_id

    @cached_property
    def client(self) -> ContainerServiceClient:
        return ContainerServiceClient(self.credential, self.subscription_id)

    def _provisioning_state(self, name: str) -> Optional[str]:
        cluster = self.client.managed_clusters.get(resource_group_name(name), name)
        return cluster.provisioning_state

    def create_cluster(
        self,
        name: str,
        location: str,
        k8s_version: str,
        agent_pools: List[ManagedClusterAgentPoolProfile],
        tags: Dict[str, str],
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ) -> Optional[str]:
        service_principal = None
        if client_id:
            service_principal = ManagedClusterServicePrincipalProfile(
                client_id=client_id, secret=client_secret
            )

        managed_cluster = ManagedCluster(
            location=location,
            dns_prefix=name,
            kubernetes_version=k8s_version or None,
            agent_pool_profiles=agent_pools,
            service_principal_profile=service_principal,
            tags=tags,
        )
        logger.info(f"Creating cluster {name}...")
        self.client.managed_clusters.begin_create_or_update(
            resource_group_name(name), name, managed_cluster
        )
        return self._provisioning_state(name)

    def get_cluster(self, name: str) -> ManagedCluster:
        return self.client.managed_clusters.get(resource_group_name(name), name)

    def get_kubeconfig(self, name: str) -> str:
        """
        Returns the user kubeconfig of a cluster as a YAML string.

        Args:
            name (str): The name of the cluster.

        Returns:
            str: The kubeconfig, or an empty string if Azure returned none.
        """
        result = self.client.managed_clusters.list_cluster_user_credentials(
            resource_group_name(name), name
        )
        if not result.kubeconfigs:
            return ""
        value = result.kubeconfigs[0].value
        if isinstance(value, (bytes, bytearray)):
            return value.decode("utf-8")
        return value or ""

    def delete_cluster(self, name: str) -> Optional[str]:
        logger.info(f"Deleting cluster {name}...")
        self.client.managed_clusters.begin_delete(resource_group_name(name), name)
        try:
            return self._provisioning_state(name)
        except ResourceNotFoundError:
            # Deletion already went through
            return "Deleting"

    def list_clusters(self) -> List[ManagedCluster]:
        return list(self.client.managed_clusters.list())

    def get_cluster_upgrades(self, name: str) -> List[str]:
        profile = self.client.managed_clusters.get_upgrade_profile(
            resource_group_name(name), name
        )
        upgrades = profile.control_plane_profile.upgrades or []
        return [upgrade.kubernetes_version for upgrade in upgrades]

    def upgrade_cluster(self, name: str, k8s_version: str) -> Optional[str]:
        cluster = self.get_cluster(name)
        cluster.kubernetes_version = k8s_version
        logger.info(f"Upgrading cluster {name} to {k8s_version}...")
        self.client.managed_clusters.begin_create_or_update(
            resource_group_name(name), name, cluster
        )
        return self._provisioning_state(name)

    def get_cluster_node_count(self, name: str) -> ManagedClusterAgentPoolProfile:
        # AKS clusters created by this service have exactly one agent pool
        profiles = self.get_cluster(name).agent_pool_profiles or []
        if not profiles:
            raise ResourceNotFoundError(f"Cluster {name} has no agent pool")
        return profiles[0]

    def scale_cluster_node_count(
        self, name: str, node_pool: str, count: int
    ) -> Optional[str]:
        group_name = resource_group_name(name)
        agent_pool: AgentPool = self.client.agent_pools.get(group_name, name, node_pool)
        agent_pool.count = count
        logger.info(f"Scaling node pool {node_pool} of cluster {name} to {count}...")
        self.client.agent_pools.begin_create_or_update(
            group_name, name, node_pool, agent_pool
        )
        return self._provisioning_state(name)


def agent_pool_profile(
    name: str, count: int, pool_type: str, vm_size: str
) -> ManagedClusterAgentPoolProfile:
    return ManagedClusterAgentPoolProfile(
        name=name,
        count=count,
        type=pool_type,
        vm_size=vm_size,
        mode="System",
    )
