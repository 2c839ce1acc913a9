import base64
from typing import Any, Mapping

from kubernetes import client

from cmaks.constants import (
    AUTOSCALER_IMAGE,
    AUTOSCALER_NAME,
    AUTOSCALER_NAMESPACE,
    AUTOSCALER_SECRET_NAME,
)
from cmaks.k8s.utils import apply_resource

# Environment of the autoscaler container and the secret key each one reads
AUTOSCALER_ENV = {
    "ARM_SUBSCRIPTION_ID": "SubscriptionID",
    "ARM_RESOURCE_GROUP": "ResourceGroup",
    "ARM_TENANT_ID": "TenantID",
    "ARM_CLIENT_ID": "ClientID",
    "ARM_CLIENT_SECRET": "ClientSecret",
    "ARM_VM_TYPE": "VMType",
    "AZURE_CLUSTER_NAME": "ClusterName",
    "AZURE_NODE_RESOURCE_GROUP": "NodeResourceGroup",
}


def create_autoscale_secret(
    secret_name: str,
    namespace: str,
    data: Mapping[str, bytes],
    api_client: client.ApiClient,
) -> None:
    """
    Creates (or replaces) the opaque secret the cluster autoscaler reads its
    Azure settings from.

    The encoded values are dropped from the secret object once it has been
    applied. The API response echoes them back, so it is not returned.

    Args:
        secret_name (str): The name of the secret.
        namespace (str): The namespace of the secret.
        data (Mapping[str, bytes]): The raw values of the secret.
        api_client (client.ApiClient): The client of the target cluster.
    """
    secret = client.V1Secret(
        kind="Secret",
        type="Opaque",
        metadata=client.V1ObjectMeta(name=secret_name, namespace=namespace),
        data={
            key: base64.b64encode(bytes(value)).decode("ascii")
            for key, value in data.items()
        },
    )
    try:
        apply_resource(secret, api_client)
    finally:
        secret.data.clear()


def autoscaler_container(
    node_pool: str,
    min_count: int,
    max_count: int,
    secret_name: str,
    image: str,
) -> client.V1Container:
    env = [
        client.V1EnvVar(
            name=env_name,
            value_from=client.V1EnvVarSource(
                secret_key_ref=client.V1SecretKeySelector(name=secret_name, key=key)
            ),
        )
        for env_name, key in AUTOSCALER_ENV.items()
    ]

    return client.V1Container(
        name=AUTOSCALER_NAME,
        image=image,
        image_pull_policy="Always",
        command=[
            "./cluster-autoscaler",
            "--v=3",
            "--logtostderr=true",
            "--cloud-provider=azure",
            "--skip-nodes-with-local-storage=false",
            f"--nodes={min_count}:{max_count}:{node_pool}",
        ],
        env=env,
        resources=client.V1ResourceRequirements(
            limits={"cpu": "100m", "memory": "300Mi"},
            requests={"cpu": "100m", "memory": "300Mi"},
        ),
    )


def create_autoscale_deployment(
    node_pool: str,
    min_count: int,
    max_count: int,
    api_client: client.ApiClient,
    image: str = AUTOSCALER_IMAGE,
    namespace: str = AUTOSCALER_NAMESPACE,
    secret_name: str = AUTOSCALER_SECRET_NAME,
) -> Any:
    """
    Deploys the cluster autoscaler for one agent pool.

    A service account and a single replica deployment named
    "cluster-autoscaler" are created, or updated if they already exist.

    Args:
        node_pool (str): The agent pool to scale.
        min_count (int): The minimum number of nodes.
        max_count (int): The maximum number of nodes.
        api_client (client.ApiClient): The client of the target cluster.
        image (str): The autoscaler image.
        namespace (str): The namespace of the deployment.
        secret_name (str): The secret holding the Azure settings.

    Returns:
        Any: The response from the deployment API call.
    """
    if min_count > max_count:
        raise ValueError("min_count cannot be greater than max_count")

    labels = {"app": AUTOSCALER_NAME}

    service_account = client.V1ServiceAccount(
        kind="ServiceAccount",
        metadata=client.V1ObjectMeta(
            name=AUTOSCALER_NAME, namespace=namespace, labels=labels
        ),
    )
    apply_resource(service_account, api_client)

    deployment = client.V1Deployment(
        kind="Deployment",
        metadata=client.V1ObjectMeta(
            name=AUTOSCALER_NAME,
            namespace=namespace,
            labels=labels,
        ),
        spec=client.V1DeploymentSpec(
            replicas=1,
            selector=client.V1LabelSelector(match_labels=labels),
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels=labels),
                spec=client.V1PodSpec(
                    service_account_name=AUTOSCALER_NAME,
                    containers=[
                        autoscaler_container(
                            node_pool, min_count, max_count, secret_name, image
                        )
                    ],
                    restart_policy="Always",
                ),
            ),
        ),
    )
    return apply_resource(deployment, api_client)
