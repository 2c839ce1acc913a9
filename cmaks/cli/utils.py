from __future__ import annotations

import functools
import os
from typing import Any, Callable, Dict, Optional, TypeVar, cast

import typer
from pydantic import ValidationError
from ruamel.yaml import YAML

from cmaks.api.models import Credentials
from cmaks.config import load_config
from cmaks.errors import ClusterServiceError
from cmaks.logger import logger
from cmaks.service import ClusterService

T = TypeVar("T", bound=Callable[..., Any])


def tenant_option() -> Any:
    return typer.Option(
        "", "--tenant", envvar="AZURE_TENANT_ID", help="The Azure AD tenant id."
    )


def app_id_option() -> Any:
    return typer.Option(
        "",
        "--app-id",
        envvar="AZURE_CLIENT_ID",
        help="The application (client) id of the service principal.",
    )


def password_option() -> Any:
    return typer.Option(
        "",
        "--password",
        envvar="AZURE_CLIENT_SECRET",
        help="The application secret. Prefer the AZURE_CLIENT_SECRET environment variable.",
        show_default=False,
    )


def subscription_option() -> Any:
    return typer.Option(
        "",
        "--subscription",
        envvar="AZURE_SUBSCRIPTION_ID",
        help="The Azure subscription id.",
    )


def build_credentials(
    tenant: str, app_id: str, password: str, subscription: str
) -> Credentials:
    """
    Builds request credentials from the command line options.

    Exits with an error if any of the four values is missing.
    """
    missing = [
        name
        for name, value in [
            ("--tenant", tenant),
            ("--app-id", app_id),
            ("--password", password),
            ("--subscription", subscription),
        ]
        if not value
    ]
    if missing:
        logger.error(f"Missing Azure credentials: {', '.join(missing)}")
        raise typer.Exit(1)

    return Credentials(
        tenant=tenant, appId=app_id, password=password, subscriptionId=subscription
    )


def load_service(config_file: Optional[str] = None) -> ClusterService:
    config = load_config(config_file)
    return ClusterService(config.autoscaler)


def read_request_file(path: str) -> Dict[str, Any]:
    """
    Reads a request message from a YAML (or JSON) file.
    """
    path = os.path.abspath(os.path.expanduser(path))
    if not os.path.exists(path):
        logger.error(f"Request file {path} does not exist.")
        raise typer.Exit(1)

    yaml = YAML(typ="safe")
    with open(path, "r") as file:
        data = yaml.load(file)

    if not isinstance(data, dict):
        logger.error(f"Request file {path} must contain a mapping.")
        raise typer.Exit(1)
    return data


def handle_errors(func: T) -> T:
    """
    Decorator that reports service and validation errors through the logger
    and exits with a non-zero code instead of printing a traceback.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ClusterServiceError as e:
            logger.error(str(e))
            raise typer.Exit(1)
        except ValidationError as e:
            logger.error(f"Invalid request: {e}")
            raise typer.Exit(1)

    return cast(T, wrapper)
