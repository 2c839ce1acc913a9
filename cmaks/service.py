from __future__ import annotations

from contextlib import ExitStack, contextmanager
from typing import Generator, List, Optional, Sequence, Type

from azure.core.credentials import TokenCredential
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    ResourceNotFoundError,
)
from azure.mgmt.containerservice.models import ManagedClusterAgentPoolProfile
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from cmaks.api.models import (
    ClusterDetailItem,
    ClusterItem,
    CreateClusterMsg,
    CreateClusterReply,
    Credentials,
    DeleteClusterMsg,
    DeleteClusterReply,
    EnableClusterAutoscalingMsg,
    EnableClusterAutoscalingReply,
    GetClusterListMsg,
    GetClusterListReply,
    GetClusterMsg,
    GetClusterNodeCountMsg,
    GetClusterNodeCountReply,
    GetClusterReply,
    GetClusterUpgradesMsg,
    GetClusterUpgradesReply,
    NodeGroup,
    ScaleClusterMsg,
    ScaleClusterReply,
    Upgrade,
    UpgradeClusterMsg,
    UpgradeClusterReply,
)
from cmaks.api.status import ClusterStatus, match_status
from cmaks.azure.aks import AKS, agent_pool_profile
from cmaks.azure.credentials import scoped_credential, secret_bundle
from cmaks.azure.groups import (
    check_for_group,
    create_group,
    delete_group,
    get_groups_client,
    resource_group_name,
)
from cmaks.config import AutoscalerConfig
from cmaks.constants import AUTOSCALER_VM_TYPE
from cmaks.errors import (
    ClientConstructionError,
    ClusterNotFoundError,
    ClusterServiceError,
    NodeGroupValidationError,
    ProviderOperationError,
)
from cmaks.k8s.autoscaler import create_autoscale_deployment, create_autoscale_secret
from cmaks.k8s.utils import load_api_client
from cmaks.logger import logger
from cmaks.utils import cluster_id

CLIENT_STAGE = "cannot get aks client"


@contextmanager
def stage(
    message: str, error: Type[ClusterServiceError] = ProviderOperationError
) -> Generator[None, None, None]:
    """
    Wraps provider errors raised inside the block into a ClusterServiceError
    whose message starts with the given stage.

    Authentication failures always surface as ClientConstructionError and
    missing resources as ClusterNotFoundError, whatever the stage.
    """
    try:
        yield
    except ClusterServiceError:
        raise
    except ClientAuthenticationError as e:
        raise ClientConstructionError(CLIENT_STAGE, e) from e
    except ResourceNotFoundError as e:
        raise ClusterNotFoundError(message, e) from e
    except ApiException as e:
        if e.status == 404:
            raise ClusterNotFoundError(message, e.reason) from e
        raise error(message, e.reason or e) from e
    except (AzureError, ConfigException, HTTPError, ValueError) as e:
        raise error(message, e) from e


def find_node_group(
    agent_pools: Sequence[ManagedClusterAgentPoolProfile],
    node_groups: Sequence[NodeGroup],
) -> Optional[NodeGroup]:
    """
    Finds the requested node group that matches an agent pool of the cluster.

    AKS supports a single agent pool per cluster here, so when more than one
    requested node group matches, the last match wins.

    Args:
        agent_pools (Sequence[ManagedClusterAgentPoolProfile]): The agent pools of the cluster.
        node_groups (Sequence[NodeGroup]): The requested node groups.

    Returns:
        Optional[NodeGroup]: The matching node group, or None.
    """
    match = None
    for pool in agent_pools:
        for node_group in node_groups:
            if node_group.name == pool.name:
                match = node_group
    return match


class ClusterService:
    """
    Handles the cluster operations of the API.

    Every operation builds its own credential-scoped clients from the
    credentials in the request and drops them before returning. No state is
    shared between requests.
    """

    def __init__(self, autoscaler: Optional[AutoscalerConfig] = None) -> None:
        self.autoscaler = autoscaler or AutoscalerConfig()

    def _open_credential(
        self, stack: ExitStack, credentials: Credentials
    ) -> TokenCredential:
        with stage(CLIENT_STAGE, ClientConstructionError):
            return stack.enter_context(scoped_credential(credentials))

    def _open_aks(self, stack: ExitStack, credentials: Credentials) -> AKS:
        credential = self._open_credential(stack, credentials)
        with stage(CLIENT_STAGE, ClientConstructionError):
            return AKS(credential, credentials.subscriptionId)

    def create_cluster(self, msg: CreateClusterMsg) -> CreateClusterReply:
        azure = msg.provider.azure
        credentials = azure.credentials

        with ExitStack() as stack:
            credential = self._open_credential(stack, credentials)

            with stage(CLIENT_STAGE, ClientConstructionError):
                groups_client = get_groups_client(
                    credential, credentials.subscriptionId
                )
            with stage("error checking resource group"):
                group_exists = check_for_group(groups_client, msg.name)
            if not group_exists:
                with stage("error creating resource group"):
                    create_group(groups_client, msg.name, azure.location)

            with stage(CLIENT_STAGE, ClientConstructionError):
                aks = AKS(credential, credentials.subscriptionId)

            agent_pools = [
                agent_pool_profile(
                    name=group.name,
                    count=group.minQuantity,
                    pool_type=group.type,
                    vm_size=group.vmSize,
                )
                for group in azure.instanceGroups
            ]
            tags = {tag.key: tag.value for tag in azure.tags}

            account = azure.clusterAccount
            with stage("error creating cluster"):
                state = aks.create_cluster(
                    name=msg.name,
                    location=azure.location,
                    k8s_version=msg.provider.k8sVersion,
                    agent_pools=agent_pools,
                    tags=tags,
                    client_id=account.clientId if account else None,
                    client_secret=(
                        account.clientSecret.get_secret_value() if account else None
                    ),
                )

        status = match_status(state)
        if status != ClusterStatus.PROVISIONING:
            logger.warning(
                f"expected status {ClusterStatus.PROVISIONING.name} on provision "
                f"but instead received {status.name} on cluster {msg.name}"
            )

        return CreateClusterReply(
            ok=True,
            cluster=ClusterItem(
                id=cluster_id(credentials.subscriptionId, msg.name),
                name=msg.name,
                status=status,
            ),
        )

    def get_cluster(self, msg: GetClusterMsg) -> GetClusterReply:
        with ExitStack() as stack:
            aks = self._open_aks(stack, msg.credentials)

            with stage("cannot retrieve cluster"):
                cluster = aks.get_cluster(msg.name)
            with stage("cannot retrieve cluster credentials"):
                kubeconfig = aks.get_kubeconfig(msg.name)

        return GetClusterReply(
            ok=True,
            cluster=ClusterDetailItem(
                id=cluster.id or "",
                name=cluster.name or msg.name,
                status=match_status(cluster.provisioning_state),
                kubeconfig=kubeconfig,
            ),
        )

    def delete_cluster(self, msg: DeleteClusterMsg) -> DeleteClusterReply:
        with ExitStack() as stack:
            credential = self._open_credential(stack, msg.credentials)
            with stage(CLIENT_STAGE, ClientConstructionError):
                aks = AKS(credential, msg.credentials.subscriptionId)

            with stage("error deleting cluster"):
                state = aks.delete_cluster(msg.name)

            status = match_status(state)
            if status != ClusterStatus.STOPPING:
                logger.warning(
                    f"expected status {ClusterStatus.STOPPING.name} on delete "
                    f"but instead received {status.name} on cluster {msg.name}"
                )

            with stage("error deleting resource group"):
                groups_client = get_groups_client(
                    credential, msg.credentials.subscriptionId
                )
                delete_group(groups_client, msg.name)

        return DeleteClusterReply(ok=True, status=status)

    def get_cluster_list(self, msg: GetClusterListMsg) -> GetClusterListReply:
        with ExitStack() as stack:
            aks = self._open_aks(stack, msg.credentials)

            with stage("cannot list clusters"):
                clusters = aks.list_clusters()

        items: List[ClusterItem] = [
            ClusterItem(
                id=cluster.id or "",
                name=cluster.name or "",
                status=match_status(cluster.provisioning_state),
            )
            for cluster in clusters
        ]
        return GetClusterListReply(ok=True, clusters=items)

    def get_cluster_upgrades(
        self, msg: GetClusterUpgradesMsg
    ) -> GetClusterUpgradesReply:
        with ExitStack() as stack:
            aks = self._open_aks(stack, msg.credentials)

            with stage("cannot retrieve available upgrades"):
                versions = aks.get_cluster_upgrades(msg.name)

        return GetClusterUpgradesReply(
            ok=True, upgrades=[Upgrade(version=version) for version in versions]
        )

    def upgrade_cluster(self, msg: UpgradeClusterMsg) -> UpgradeClusterReply:
        credentials = msg.provider.azure.credentials
        with ExitStack() as stack:
            aks = self._open_aks(stack, credentials)

            with stage("error upgrading cluster"):
                state = aks.upgrade_cluster(msg.name, msg.provider.k8sVersion)

        return UpgradeClusterReply(
            ok=True,
            cluster=ClusterItem(
                id=cluster_id(credentials.subscriptionId, msg.name),
                name=msg.name,
                status=match_status(state),
            ),
        )

    def get_cluster_node_count(
        self, msg: GetClusterNodeCountMsg
    ) -> GetClusterNodeCountReply:
        with ExitStack() as stack:
            aks = self._open_aks(stack, msg.credentials)

            with stage("cannot retrieve cluster node count"):
                agent = aks.get_cluster_node_count(msg.name)

        return GetClusterNodeCountReply(
            ok=True, name=agent.name or "", count=agent.count or 0
        )

    def scale_cluster(self, msg: ScaleClusterMsg) -> ScaleClusterReply:
        with ExitStack() as stack:
            aks = self._open_aks(stack, msg.credentials)

            with stage("error scaling cluster"):
                state = aks.scale_cluster_node_count(msg.name, msg.nodePool, msg.count)

        return ScaleClusterReply(ok=True, status=match_status(state))

    def enable_cluster_autoscaling(
        self, msg: EnableClusterAutoscalingMsg
    ) -> EnableClusterAutoscalingReply:
        credentials = msg.credentials
        with ExitStack() as stack:
            aks = self._open_aks(stack, credentials)

            with stage("cannot retrieve cluster"):
                cluster = aks.get_cluster(msg.name)
                kubeconfig = aks.get_kubeconfig(msg.name)

            node_group = find_node_group(cluster.agent_pool_profiles or [], msg.nodegroups)
            if node_group is None:
                raise NodeGroupValidationError(
                    "Unable to find provided nodeGroup in cluster"
                )

            bundle = stack.enter_context(
                secret_bundle(
                    {
                        "ResourceGroup": resource_group_name(msg.name),
                        "NodeResourceGroup": cluster.node_resource_group or "",
                        "ClientID": credentials.appId,
                        "ClientSecret": credentials.password.get_secret_value(),
                        "TenantID": credentials.tenant,
                        "VMType": AUTOSCALER_VM_TYPE,
                        "ClusterName": msg.name,
                        "SubscriptionID": credentials.subscriptionId,
                    }
                )
            )

            with stage("cannot load cluster kubeconfig"):
                api_client = load_api_client(cluster.name or msg.name, kubeconfig)
            stack.callback(api_client.close)

            with stage("error creating autoscaler secret"):
                create_autoscale_secret(
                    self.autoscaler.secretName,
                    self.autoscaler.namespace,
                    bundle,
                    api_client,
                )

            with stage("error while enabling cluster autoscaling"):
                create_autoscale_deployment(
                    node_group.name,
                    node_group.minQuantity,
                    node_group.maxQuantity,
                    api_client,
                    image=self.autoscaler.image,
                    namespace=self.autoscaler.namespace,
                    secret_name=self.autoscaler.secretName,
                )

        logger.info(
            f"Cluster autoscaling enabled for node pool {node_group.name} "
            f"of cluster {msg.name} ({node_group.minQuantity}-{node_group.maxQuantity})"
        )
        return EnableClusterAutoscalingReply(ok=True)
