from __future__ import annotations

import os
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from ruamel.yaml import YAML

from cmaks.constants import (
    AUTOSCALER_IMAGE,
    AUTOSCALER_NAMESPACE,
    AUTOSCALER_SECRET_NAME,
    CONFIG_ENV_VAR,
)
from cmaks.utils import to_yaml

CONFIG_VERSION = "1.0"

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class CmaksConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class AutoscalerConfig(CmaksConfigModel):
    """
    Represents the settings of the cluster autoscaler pushed to clusters.
    """

    image: str = Field(
        AUTOSCALER_IMAGE, description="The cluster autoscaler image to deploy."
    )
    namespace: str = Field(
        AUTOSCALER_NAMESPACE, description="The namespace the autoscaler runs in."
    )
    secretName: str = Field(
        AUTOSCALER_SECRET_NAME,
        description="The secret holding the Azure settings of the autoscaler.",
    )


class ServerConfig(CmaksConfigModel):
    """
    Configuration of the cluster API server.
    """

    version: str = Field(CONFIG_VERSION, description="The version of the configuration.")
    host: str = Field("0.0.0.0", description="The address to listen on.")
    port: int = Field(9020, description="The port to listen on.")
    logLevel: str = Field("INFO", description="The log level of the server.")
    autoscaler: AutoscalerConfig = Field(
        default_factory=AutoscalerConfig,
        description="The settings of the cluster autoscaler.",
    )

    @field_validator("version", mode="before")
    def validate_version(cls, v: str) -> str:
        if not re.match(r"^\d+\.\d+$", str(v)):
            raise ValueError('version must be in the format "x.x"')
        return str(v)

    @field_validator("port", mode="before")
    def validate_port(cls, v: int) -> int:
        if not 0 < int(v) < 65536:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("logLevel", mode="before")
    def validate_log_level(cls, v: str) -> str:
        """
        Validates the log level and normalizes it to upper case.

        Args:
            v (str): The value of the logLevel field.

        Returns:
            str: The upper cased log level.

        Raises:
            ValueError: If the log level is unknown.
        """
        level = str(v).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"logLevel must be one of {VALID_LOG_LEVELS}")
        return level


def generate_yaml(config: ServerConfig) -> str:
    """
    Generate a YAML string representation of the given config object.

    Args:
        config (ServerConfig): The config object to generate YAML from.

    Returns:
        str: The YAML string representation of the config object.
    """
    return to_yaml(config.model_dump(exclude_none=True))


def check_version(version: Any) -> None:
    if version is None:
        raise ValueError("Invalid configuration: The 'version' field is missing.")

    version = str(version)
    if not re.match(r"^\d+\.\d+$", version):
        raise ValueError('version must be in the format "x.x"')

    major_version, minor_version = map(int, version.split("."))
    tool_major_version, tool_minor_version = map(int, CONFIG_VERSION.split("."))

    if major_version < tool_major_version:
        raise ValueError(
            f"Invalid configuration: This server supports versions starting from {tool_major_version}.0."
        )
    elif major_version > tool_major_version:
        raise ValueError(
            "Invalid configuration: Your current server is too old. Please upgrade it to handle this configuration."
        )
    elif minor_version > tool_minor_version:  # No forward compatibility
        raise ValueError(
            f"Invalid configuration: This server supports versions up to {tool_major_version}.{tool_minor_version}."
        )


def parse_yaml(yaml_str: str) -> ServerConfig:
    """
    Parse a YAML string and return a ServerConfig object.

    Args:
        yaml_str (str): The YAML string to parse.

    Returns:
        ServerConfig: The parsed config object.
    """
    yaml = YAML(typ="safe")
    data: Dict[str, Any] = yaml.load(yaml_str) or {}
    check_version(data.get("version", None))
    return ServerConfig(**data)


def load_config(path: Optional[str] = None) -> ServerConfig:
    """
    Loads the server configuration.

    The path defaults to the value of the CMAKS_CONFIG environment variable.
    When no file is given, or the file does not exist, the defaults are used.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return ServerConfig()

    path = os.path.abspath(os.path.expanduser(path))
    if not os.path.exists(path):
        return ServerConfig()

    with open(path, "r") as file:
        return parse_yaml(file.read())
