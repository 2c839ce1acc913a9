import base64
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

import cmaks.k8s.autoscaler
from cmaks.constants import AUTOSCALER_IMAGE
from cmaks.k8s.autoscaler import (
    AUTOSCALER_ENV,
    create_autoscale_deployment,
    create_autoscale_secret,
)


def test_create_autoscale_secret() -> None:
    api_client = MagicMock()
    applied = {}

    def capture(secret: Any, client_arg: Any) -> None:
        applied["data"] = dict(secret.data)

    with patch.object(
        cmaks.k8s.autoscaler, "apply_resource", side_effect=capture
    ) as mock_apply:
        result = create_autoscale_secret(
            "cluster-autoscaler-azure",
            "kube-system",
            {"ClientID": bytearray(b"app1"), "VMType": b"AKS"},
            api_client,
        )

        secret, client_arg = mock_apply.call_args[0]
        assert client_arg is api_client
        assert secret.kind == "Secret"
        assert secret.type == "Opaque"
        assert secret.metadata.name == "cluster-autoscaler-azure"
        assert secret.metadata.namespace == "kube-system"
        assert applied["data"] == {
            "ClientID": base64.b64encode(b"app1").decode(),
            "VMType": base64.b64encode(b"AKS").decode(),
        }
        # Encoded values do not outlive the apply
        assert secret.data == {}
        assert result is None


def test_create_autoscale_secret_clears_data_on_error() -> None:
    with patch.object(
        cmaks.k8s.autoscaler, "apply_resource", side_effect=ValueError("boom")
    ) as mock_apply:
        with pytest.raises(ValueError, match="boom"):
            create_autoscale_secret(
                "cluster-autoscaler-azure",
                "kube-system",
                {"ClientSecret": bytearray(b"secret1")},
                MagicMock(),
            )

        secret = mock_apply.call_args[0][0]
        assert secret.data == {}


def test_create_autoscale_deployment() -> None:
    api_client = MagicMock()
    with patch.object(cmaks.k8s.autoscaler, "apply_resource") as mock_apply:
        create_autoscale_deployment("pool1", 1, 5, api_client)

        assert mock_apply.call_count == 2
        service_account = mock_apply.call_args_list[0][0][0]
        deployment = mock_apply.call_args_list[1][0][0]

        assert service_account.kind == "ServiceAccount"
        assert service_account.metadata.name == "cluster-autoscaler"
        assert deployment.kind == "Deployment"
        assert deployment.metadata.namespace == "kube-system"
        assert deployment.spec.replicas == 1

        pod_spec = deployment.spec.template.spec
        assert pod_spec.service_account_name == "cluster-autoscaler"

        container = pod_spec.containers[0]
        assert container.image == AUTOSCALER_IMAGE
        assert "--cloud-provider=azure" in container.command
        assert "--nodes=1:5:pool1" in container.command

        env = {e.name: e.value_from.secret_key_ref for e in container.env}
        assert set(env) == set(AUTOSCALER_ENV)
        assert env["ARM_CLIENT_SECRET"].key == "ClientSecret"
        assert env["ARM_CLIENT_SECRET"].name == "cluster-autoscaler-azure"


def test_create_autoscale_deployment_custom_image() -> None:
    with patch.object(cmaks.k8s.autoscaler, "apply_resource") as mock_apply:
        create_autoscale_deployment(
            "pool1", 0, 3, MagicMock(), image="example.com/autoscaler:dev"
        )

        deployment = mock_apply.call_args_list[1][0][0]
        assert deployment.spec.template.spec.containers[0].image == (
            "example.com/autoscaler:dev"
        )


def test_create_autoscale_deployment_invalid_range() -> None:
    with patch.object(cmaks.k8s.autoscaler, "apply_resource") as mock_apply:
        with pytest.raises(ValueError, match="min_count cannot be greater than max_count"):
            create_autoscale_deployment("pool1", 5, 1, MagicMock())

        mock_apply.assert_not_called()
