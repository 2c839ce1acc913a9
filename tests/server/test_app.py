from typing import Any, Dict
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from cmaks.api.models import (
    ClusterItem,
    CreateClusterReply,
    DeleteClusterReply,
    EnableClusterAutoscalingReply,
    GetClusterListReply,
    GetClusterNodeCountReply,
    ScaleClusterReply,
)
from cmaks.api.status import ClusterStatus
from cmaks.errors import (
    ClientConstructionError,
    ClusterNotFoundError,
    NodeGroupValidationError,
    ProviderOperationError,
)
from cmaks.server import create_app
from cmaks.service import ClusterService

CREDENTIALS = {
    "tenant": "tenant1",
    "appId": "app1",
    "password": "secret1",
    "subscriptionId": "sub1",
}


@pytest.fixture
def service() -> MagicMock:
    return MagicMock(spec=ClusterService)


@pytest.fixture
def client(service: MagicMock) -> TestClient:
    return TestClient(create_app(service=service))


def _request(**fields: Any) -> Dict[str, Any]:
    return {"name": "demo", "credentials": CREDENTIALS, **fields}


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_create_cluster(client: TestClient, service: MagicMock) -> None:
    service.create_cluster.return_value = CreateClusterReply(
        ok=True,
        cluster=ClusterItem(id="id1", name="demo", status=ClusterStatus.PROVISIONING),
    )

    response = client.post(
        "/v1/CreateCluster",
        json={
            "name": "demo",
            "provider": {
                "k8sVersion": "1.28.5",
                "azure": {
                    "location": "eastus",
                    "credentials": CREDENTIALS,
                    "instanceGroups": [{"name": "pool1", "minQuantity": 1}],
                },
            },
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "cluster": {"id": "id1", "name": "demo", "status": "PROVISIONING"},
    }
    msg = service.create_cluster.call_args[0][0]
    assert msg.provider.azure.credentials.password.get_secret_value() == "secret1"


def test_create_cluster_without_instance_groups(
    client: TestClient, service: MagicMock
) -> None:
    response = client.post(
        "/v1/CreateCluster",
        json={
            "name": "demo",
            "provider": {
                "azure": {
                    "location": "eastus",
                    "credentials": CREDENTIALS,
                    "instanceGroups": [],
                }
            },
        },
    )

    assert response.status_code == 422
    service.create_cluster.assert_not_called()


def test_get_cluster_list(client: TestClient, service: MagicMock) -> None:
    service.get_cluster_list.return_value = GetClusterListReply(
        ok=True,
        clusters=[
            ClusterItem(id="b", name="b", status=ClusterStatus.RUNNING),
            ClusterItem(id="a", name="a", status=ClusterStatus.ERROR),
        ],
    )

    response = client.post("/v1/GetClusterList", json={"credentials": CREDENTIALS})

    assert response.status_code == 200
    assert [c["name"] for c in response.json()["clusters"]] == ["b", "a"]


def test_delete_cluster(client: TestClient, service: MagicMock) -> None:
    service.delete_cluster.return_value = DeleteClusterReply(
        ok=True, status=ClusterStatus.STOPPING
    )

    response = client.post("/v1/DeleteCluster", json=_request())

    assert response.status_code == 200
    assert response.json() == {"ok": True, "status": "STOPPING"}


def test_node_count_and_scale(client: TestClient, service: MagicMock) -> None:
    service.get_cluster_node_count.return_value = GetClusterNodeCountReply(
        ok=True, name="pool1", count=3
    )
    service.scale_cluster.return_value = ScaleClusterReply(
        ok=True, status=ClusterStatus.RECONCILING
    )

    response = client.post("/v1/GetClusterNodeCount", json=_request())
    assert response.json() == {"ok": True, "name": "pool1", "count": 3}

    response = client.post(
        "/v1/ScaleCluster", json=_request(nodePool="pool1", count=5)
    )
    assert response.json() == {"ok": True, "status": "RECONCILING"}


def test_scale_cluster_negative_count(client: TestClient, service: MagicMock) -> None:
    response = client.post(
        "/v1/ScaleCluster", json=_request(nodePool="pool1", count=-1)
    )

    assert response.status_code == 422
    service.scale_cluster.assert_not_called()


def test_enable_cluster_autoscaling(client: TestClient, service: MagicMock) -> None:
    service.enable_cluster_autoscaling.return_value = EnableClusterAutoscalingReply(
        ok=True
    )

    response = client.post(
        "/v1/EnableClusterAutoscaling",
        json=_request(
            nodegroups=[{"name": "pool1", "minQuantity": 1, "maxQuantity": 3}]
        ),
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.parametrize(
    "error, status_code",
    [
        (NodeGroupValidationError("Unable to find provided nodeGroup in cluster"), 400),
        (ClientConstructionError("cannot get aks client", "bad secret"), 401),
        (ClusterNotFoundError("cannot retrieve cluster", "not found"), 404),
        (ProviderOperationError("error scaling cluster", "conflict"), 502),
    ],
)
def test_service_errors(
    client: TestClient, service: MagicMock, error: Exception, status_code: int
) -> None:
    service.get_cluster.side_effect = error

    response = client.post("/v1/GetCluster", json=_request())

    assert response.status_code == status_code
    body = response.json()
    assert body["detail"] == str(error)
    assert body["stage"] == error.stage  # type: ignore[attr-defined]
    assert "ok" not in body
