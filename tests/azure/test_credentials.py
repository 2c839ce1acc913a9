from unittest.mock import patch

import pytest

import cmaks.azure.credentials
from cmaks.api.models import Credentials
from cmaks.azure.credentials import SecretBundle, scoped_credential, secret_bundle

credentials = Credentials(
    tenant="tenant1", appId="app1", password="secret1", subscriptionId="sub1"
)


def test_scoped_credential_closes_on_exit() -> None:
    with patch.object(
        cmaks.azure.credentials, "ClientSecretCredential"
    ) as mock_credential_class:
        with scoped_credential(credentials) as credential:
            assert credential is mock_credential_class.return_value

        mock_credential_class.assert_called_once_with(
            tenant_id="tenant1", client_id="app1", client_secret="secret1"
        )
        credential.close.assert_called_once()


def test_scoped_credential_closes_on_error() -> None:
    with patch.object(
        cmaks.azure.credentials, "ClientSecretCredential"
    ) as mock_credential_class:
        with pytest.raises(RuntimeError):
            with scoped_credential(credentials):
                raise RuntimeError("boom")

        mock_credential_class.return_value.close.assert_called_once()


def test_secret_bundle_wipe() -> None:
    bundle = SecretBundle({"ClientSecret": "secret1", "TenantID": "tenant1"})
    assert bytes(bundle["ClientSecret"]) == b"secret1"
    assert len(bundle) == 2

    buffer = bundle["ClientSecret"]
    bundle.wipe()

    assert buffer == bytearray(len("secret1"))
    assert len(bundle) == 0


def test_secret_bundle_context_wipes_on_error() -> None:
    with pytest.raises(RuntimeError):
        with secret_bundle({"ClientSecret": "secret1"}) as bundle:
            buffer = bundle["ClientSecret"]
            raise RuntimeError("boom")

    assert set(buffer) == {0}
    assert dict(bundle) == {}
