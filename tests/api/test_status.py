import pytest

from cmaks.api.status import ClusterStatus, match_status


@pytest.mark.parametrize(
    "provider_status, expected",
    [
        ("Creating", ClusterStatus.PROVISIONING),
        ("Updating", ClusterStatus.RECONCILING),
        ("Upgrading", ClusterStatus.RECONCILING),
        ("Succeeded", ClusterStatus.RUNNING),
        ("Deleting", ClusterStatus.STOPPING),
        ("Failed", ClusterStatus.ERROR),
    ],
)
def test_match_status_known(provider_status: str, expected: ClusterStatus) -> None:
    assert match_status(provider_status) == expected


@pytest.mark.parametrize(
    "provider_status", ["", "creating", "Canceled", "Stopping", " Succeeded", None]
)
def test_match_status_unknown(provider_status: str) -> None:
    assert match_status(provider_status) == ClusterStatus.STATUS_UNSPECIFIED


def test_match_status_enum_values() -> None:
    assert [s.value for s in ClusterStatus] == [0, 1, 2, 3, 4, 5]
