from __future__ import annotations

from enum import IntEnum
from typing import Dict, Optional


class ClusterStatus(IntEnum):
    STATUS_UNSPECIFIED = 0
    PROVISIONING = 1
    RECONCILING = 2
    RUNNING = 3
    STOPPING = 4
    ERROR = 5


# AKS provisioning states
_PROVIDER_STATUSES: Dict[str, ClusterStatus] = {
    "Creating": ClusterStatus.PROVISIONING,
    "Updating": ClusterStatus.RECONCILING,
    "Upgrading": ClusterStatus.RECONCILING,
    "Succeeded": ClusterStatus.RUNNING,
    "Deleting": ClusterStatus.STOPPING,
    "Failed": ClusterStatus.ERROR,
}


def match_status(status: Optional[str]) -> ClusterStatus:
    """
    Translates an AKS provisioning state into a ClusterStatus.

    Unknown states, including an empty or missing state, map to
    STATUS_UNSPECIFIED. This function never raises.

    Args:
        status (Optional[str]): The provisioning state reported by Azure.

    Returns:
        ClusterStatus: The matching status.

    Example:
        >>> match_status("Creating")
        <ClusterStatus.PROVISIONING: 1>
    """
    if not isinstance(status, str):
        return ClusterStatus.STATUS_UNSPECIFIED
    return _PROVIDER_STATUSES.get(status, ClusterStatus.STATUS_UNSPECIFIED)
