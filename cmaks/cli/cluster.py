from __future__ import annotations

from typing import List, Optional

import typer
from tabulate import tabulate

from cmaks.api.models import (
    CreateClusterMsg,
    DeleteClusterMsg,
    EnableClusterAutoscalingMsg,
    GetClusterListMsg,
    GetClusterMsg,
    GetClusterNodeCountMsg,
    GetClusterUpgradesMsg,
    NodeGroup,
    ScaleClusterMsg,
    UpgradeClusterMsg,
)
from cmaks.cli.utils import (
    app_id_option,
    build_credentials,
    handle_errors,
    load_service,
    password_option,
    read_request_file,
    subscription_option,
    tenant_option,
)
from cmaks.logger import logger

cluster_app = typer.Typer()

CONFIG_OPTION_HELP = "Path to the server config file."


def parse_node_group(spec: str) -> NodeGroup:
    """
    Parses a node group given as 'name=min:max'.

    Args:
        spec (str): The node group string.

    Returns:
        NodeGroup: The parsed node group.

    Raises:
        ValueError: If the string is not in the expected format.
    """
    if "=" not in spec or ":" not in spec:
        raise ValueError(f"Invalid node group, expected 'name=min:max': {spec}")

    name, quantities = spec.split("=", 1)
    min_str, max_str = quantities.split(":", 1)
    if not min_str.strip().isdigit() or not max_str.strip().isdigit():
        raise ValueError(f"Invalid node group quantities: {spec}")

    return NodeGroup(
        name=name.strip(),
        minQuantity=int(min_str),
        maxQuantity=int(max_str),
    )


@cluster_app.command("list")
@handle_errors
def list_clusters(
    tenant: str = tenant_option(),
    app_id: str = app_id_option(),
    password: str = password_option(),
    subscription: str = subscription_option(),
) -> None:
    """
    Lists the AKS clusters of the subscription.
    """
    credentials = build_credentials(tenant, app_id, password, subscription)
    reply = load_service().get_cluster_list(GetClusterListMsg(credentials=credentials))

    table = [
        (cluster.name, cluster.status.name, cluster.id) for cluster in reply.clusters
    ]
    logger.info(tabulate(table, headers=["Name", "Status", "Id"]))


@cluster_app.command()
@handle_errors
def get(
    name: str = typer.Argument(..., help="The name of the cluster."),
    show_kubeconfig: bool = typer.Option(
        False, "--kubeconfig", "-k", help="Print the kubeconfig of the cluster."
    ),
    tenant: str = tenant_option(),
    app_id: str = app_id_option(),
    password: str = password_option(),
    subscription: str = subscription_option(),
) -> None:
    """
    Shows a cluster.
    """
    credentials = build_credentials(tenant, app_id, password, subscription)
    reply = load_service().get_cluster(
        GetClusterMsg(name=name, credentials=credentials)
    )

    cluster = reply.cluster
    logger.info(
        tabulate(
            [(cluster.name, cluster.status.name, cluster.id)],
            headers=["Name", "Status", "Id"],
        )
    )
    if show_kubeconfig:
        typer.echo(cluster.kubeconfig)


@cluster_app.command()
@handle_errors
def create(
    request_file: str = typer.Option(
        ...,
        "--file",
        "-f",
        help="Path to a YAML file holding the CreateCluster request.",
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", help=CONFIG_OPTION_HELP
    ),
) -> None:
    """
    Creates an AKS cluster, together with its resource group.
    """
    msg = CreateClusterMsg(**read_request_file(request_file))
    reply = load_service(config_file).create_cluster(msg)
    logger.info(
        f"Cluster {reply.cluster.name} is {reply.cluster.status.name} ({reply.cluster.id})"
    )


@cluster_app.command()
@handle_errors
def delete(
    name: str = typer.Argument(..., help="The name of the cluster."),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Automatic yes to prompts. Use this option to bypass the confirmation "
        "prompt and directly proceed with the operation.",
    ),
    tenant: str = tenant_option(),
    app_id: str = app_id_option(),
    password: str = password_option(),
    subscription: str = subscription_option(),
) -> None:
    """
    Deletes a cluster and its resource group.
    """
    if not yes and not typer.confirm(
        f"Are you sure you want to delete cluster {name}? The cluster and its "
        "resource group will be permanently deleted.",
        default=False,
    ):
        return

    credentials = build_credentials(tenant, app_id, password, subscription)
    reply = load_service().delete_cluster(
        DeleteClusterMsg(name=name, credentials=credentials)
    )
    logger.info(f"Cluster {name} is {reply.status.name}")


@cluster_app.command()
@handle_errors
def upgrades(
    name: str = typer.Argument(..., help="The name of the cluster."),
    tenant: str = tenant_option(),
    app_id: str = app_id_option(),
    password: str = password_option(),
    subscription: str = subscription_option(),
) -> None:
    """
    Lists the Kubernetes versions a cluster can be upgraded to.
    """
    credentials = build_credentials(tenant, app_id, password, subscription)
    reply = load_service().get_cluster_upgrades(
        GetClusterUpgradesMsg(name=name, credentials=credentials)
    )
    logger.info(tabulate([(u.version,) for u in reply.upgrades], headers=["Version"]))


@cluster_app.command()
@handle_errors
def upgrade(
    name: str = typer.Argument(..., help="The name of the cluster."),
    k8s_version: str = typer.Option(
        ..., "--version", help="The Kubernetes version to upgrade to."
    ),
    tenant: str = tenant_option(),
    app_id: str = app_id_option(),
    password: str = password_option(),
    subscription: str = subscription_option(),
) -> None:
    """
    Upgrades a cluster to another Kubernetes version.
    """
    credentials = build_credentials(tenant, app_id, password, subscription)
    reply = load_service().upgrade_cluster(
        UpgradeClusterMsg(
            name=name,
            provider={"k8sVersion": k8s_version, "azure": {"credentials": credentials}},
        )
    )
    logger.info(f"Cluster {name} is {reply.cluster.status.name}")


@cluster_app.command("node-count")
@handle_errors
def node_count(
    name: str = typer.Argument(..., help="The name of the cluster."),
    tenant: str = tenant_option(),
    app_id: str = app_id_option(),
    password: str = password_option(),
    subscription: str = subscription_option(),
) -> None:
    """
    Shows the node count of the agent pool of a cluster.
    """
    credentials = build_credentials(tenant, app_id, password, subscription)
    reply = load_service().get_cluster_node_count(
        GetClusterNodeCountMsg(name=name, credentials=credentials)
    )
    logger.info(tabulate([(reply.name, reply.count)], headers=["Node Pool", "Count"]))


@cluster_app.command()
@handle_errors
def scale(
    name: str = typer.Argument(..., help="The name of the cluster."),
    node_pool: str = typer.Option(
        ..., "--node-pool", "-p", help="The agent pool to scale."
    ),
    count: int = typer.Option(..., "--count", "-n", help="The desired node count."),
    tenant: str = tenant_option(),
    app_id: str = app_id_option(),
    password: str = password_option(),
    subscription: str = subscription_option(),
) -> None:
    """
    Resizes an agent pool of a cluster.
    """
    credentials = build_credentials(tenant, app_id, password, subscription)
    reply = load_service().scale_cluster(
        ScaleClusterMsg(
            name=name, nodePool=node_pool, count=count, credentials=credentials
        )
    )
    logger.info(f"Cluster {name} is {reply.status.name}")


@cluster_app.command()
@handle_errors
def autoscale(
    name: str = typer.Argument(..., help="The name of the cluster."),
    node_groups: List[str] = typer.Option(
        ...,
        "--node-group",
        "-g",
        help="A node group to autoscale, as 'name=min:max'. Can be repeated; "
        "the last group matching the agent pool wins.",
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", help=CONFIG_OPTION_HELP
    ),
    tenant: str = tenant_option(),
    app_id: str = app_id_option(),
    password: str = password_option(),
    subscription: str = subscription_option(),
) -> None:
    """
    Deploys the cluster autoscaler to a cluster.
    """
    try:
        groups = [parse_node_group(spec) for spec in node_groups]
    except ValueError as e:
        logger.error(str(e))
        raise typer.Exit(1)

    credentials = build_credentials(tenant, app_id, password, subscription)
    load_service(config_file).enable_cluster_autoscaling(
        EnableClusterAutoscalingMsg(
            name=name, credentials=credentials, nodegroups=groups
        )
    )
    logger.info(f"Cluster autoscaling enabled on cluster {name}")
