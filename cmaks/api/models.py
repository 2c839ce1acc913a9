from __future__ import annotations

from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    SecretStr,
    model_validator,
)

from cmaks.api.status import ClusterStatus
from cmaks.constants import DEFAULT_VM_SIZE


class CmaksBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


def _status_from_name(value: Any) -> Any:
    if isinstance(value, str) and value in ClusterStatus.__members__:
        return ClusterStatus[value]
    return value


# Statuses travel by name in JSON, e.g. "PROVISIONING"
Status = Annotated[
    ClusterStatus,
    BeforeValidator(_status_from_name),
    PlainSerializer(lambda status: status.name, return_type=str, when_used="json"),
]


class Credentials(CmaksBaseModel):
    """
    Represents the Azure service principal a request is made on behalf of.
    """

    tenant: str = Field(..., description="The Azure AD tenant id.")
    appId: str = Field(..., description="The application (client) id.")
    password: SecretStr = Field(..., description="The application secret.")
    subscriptionId: str = Field(..., description="The Azure subscription id.")


class ClusterAccount(CmaksBaseModel):
    """
    Represents the service principal the managed cluster itself runs as.
    """

    clientId: str = Field(..., description="The client id of the cluster account.")
    clientSecret: SecretStr = Field(
        ..., description="The client secret of the cluster account."
    )


class AgentPool(CmaksBaseModel):
    """
    Represents a group of worker nodes requested at cluster creation.
    """

    name: str = Field(..., description="The name of the agent pool.")
    minQuantity: int = Field(
        1, description="The number of nodes the pool is created with."
    )
    maxQuantity: int = Field(0, description="The maximum number of nodes.")
    type: str = Field(
        "VirtualMachineScaleSets", description="The type of the agent pool."
    )
    vmSize: str = Field(DEFAULT_VM_SIZE, description="The VM size of the nodes.")


class NodeGroup(CmaksBaseModel):
    """
    Represents the scaling range requested for an existing agent pool.
    """

    name: str = Field(..., description="The name of the agent pool.")
    minQuantity: int = Field(..., description="The minimum number of nodes.")
    maxQuantity: int = Field(..., description="The maximum number of nodes.")

    @model_validator(mode="before")
    def check_quantities(cls, values: Dict[str, int]) -> Dict[str, int]:
        min_quantity, max_quantity = values.get("minQuantity"), values.get(
            "maxQuantity"
        )
        if (
            min_quantity is not None
            and max_quantity is not None
            and max_quantity < min_quantity
        ):
            raise ValueError(
                "maxQuantity must be greater than or equal to minQuantity"
            )
        return values


class Tag(CmaksBaseModel):
    key: str
    value: str


class AzureSpec(CmaksBaseModel):
    location: str = Field("", description="The Azure region of the cluster.")
    credentials: Credentials
    clusterAccount: Optional[ClusterAccount] = Field(
        None, description="The service principal the cluster runs as."
    )
    instanceGroups: List[AgentPool] = Field(
        default_factory=list, description="The agent pools of the cluster."
    )
    tags: List[Tag] = Field(default_factory=list)


class ProviderSpec(CmaksBaseModel):
    k8sVersion: str = Field("", description="The Kubernetes version.")
    azure: AzureSpec


class ClusterItem(CmaksBaseModel):
    id: str
    name: str
    status: Status = ClusterStatus.STATUS_UNSPECIFIED


class ClusterDetailItem(ClusterItem):
    kubeconfig: str = ""


class Upgrade(CmaksBaseModel):
    version: str


class CreateClusterMsg(CmaksBaseModel):
    name: str
    provider: ProviderSpec

    @model_validator(mode="after")
    def check_instance_groups(self) -> "CreateClusterMsg":
        if not self.provider.azure.instanceGroups:
            raise ValueError("At least one instance group must be provided")
        return self


class CreateClusterReply(CmaksBaseModel):
    ok: bool = True
    cluster: ClusterItem


class GetClusterMsg(CmaksBaseModel):
    name: str
    credentials: Credentials


class GetClusterReply(CmaksBaseModel):
    ok: bool = True
    cluster: ClusterDetailItem


class DeleteClusterMsg(CmaksBaseModel):
    name: str
    credentials: Credentials


class DeleteClusterReply(CmaksBaseModel):
    ok: bool = True
    status: Status


class GetClusterListMsg(CmaksBaseModel):
    credentials: Credentials


class GetClusterListReply(CmaksBaseModel):
    ok: bool = True
    clusters: List[ClusterItem] = Field(default_factory=list)


class GetClusterUpgradesMsg(CmaksBaseModel):
    name: str
    credentials: Credentials


class GetClusterUpgradesReply(CmaksBaseModel):
    ok: bool = True
    upgrades: List[Upgrade] = Field(default_factory=list)


class UpgradeClusterMsg(CmaksBaseModel):
    name: str
    provider: ProviderSpec


class UpgradeClusterReply(CmaksBaseModel):
    ok: bool = True
    cluster: ClusterItem


class GetClusterNodeCountMsg(CmaksBaseModel):
    name: str
    credentials: Credentials


class GetClusterNodeCountReply(CmaksBaseModel):
    ok: bool = True
    name: str
    count: int


class ScaleClusterMsg(CmaksBaseModel):
    name: str
    nodePool: str
    count: int = Field(..., ge=0)
    credentials: Credentials


class ScaleClusterReply(CmaksBaseModel):
    ok: bool = True
    status: Status


class EnableClusterAutoscalingMsg(CmaksBaseModel):
    name: str
    credentials: Credentials
    nodegroups: List[NodeGroup] = Field(..., min_length=1)


class EnableClusterAutoscalingReply(CmaksBaseModel):
    ok: bool = True
