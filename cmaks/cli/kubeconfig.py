from __future__ import annotations

import typer

from cmaks.api.models import GetClusterMsg
from cmaks.cli.utils import (
    app_id_option,
    build_credentials,
    handle_errors,
    load_service,
    password_option,
    subscription_option,
    tenant_option,
)
from cmaks.k8s.utils import parse_kubeconfig, update_kubeconfig
from cmaks.logger import logger

kube_app = typer.Typer()


@kube_app.command()
@handle_errors
def update(
    name: str = typer.Argument(..., help="The name of the cluster."),
    path: str = typer.Option(
        "~/.kube/config", "--path", help="The kubeconfig file to update."
    ),
    tenant: str = tenant_option(),
    app_id: str = app_id_option(),
    password: str = password_option(),
    subscription: str = subscription_option(),
) -> None:
    """
    Updates the default kubeconfig file (~/.kube/config) to include the connection
    details of the specified cluster.
    """
    logger.info("Updating kubeconfig...")
    credentials = build_credentials(tenant, app_id, password, subscription)
    reply = load_service().get_cluster(
        GetClusterMsg(name=name, credentials=credentials)
    )

    if not reply.cluster.kubeconfig:
        logger.error(f"No kubeconfig available for cluster {name}.")
        raise typer.Exit(1)

    update_kubeconfig(parse_kubeconfig(reply.cluster.kubeconfig), path)
    logger.info("Successfully updated kubeconfig.")
