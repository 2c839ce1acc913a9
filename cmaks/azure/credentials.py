from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Generator, Iterator, Mapping, Optional

from azure.identity import ClientSecretCredential

from cmaks.api.models import Credentials


@contextmanager
def scoped_credential(
    credentials: Credentials,
) -> Generator[ClientSecretCredential, None, None]:
    """
    Builds an Azure credential for the duration of a request.

    The application secret is only revealed while the credential is being
    constructed, and the credential (with its token cache and transport) is
    closed on every exit path.

    Args:
        credentials (Credentials): The service principal of the request.

    Yields:
        ClientSecretCredential: The credential to build management clients with.
    """
    credential = ClientSecretCredential(
        tenant_id=credentials.tenant,
        client_id=credentials.appId,
        client_secret=credentials.password.get_secret_value(),
    )
    try:
        yield credential
    finally:
        credential.close()


class SecretBundle(Mapping[str, bytearray]):
    """
    A mapping of setting names to mutable byte buffers.

    Values are stored as bytearrays so they can be zeroed in place once the
    bundle has been handed over to its consumer.
    """

    def __init__(self, values: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, bytearray] = {}
        for key, value in (values or {}).items():
            self[key] = value

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key] = bytearray(value.encode("utf-8"))

    def __getitem__(self, key: str) -> bytearray:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def wipe(self) -> None:
        for value in self._data.values():
            for i in range(len(value)):
                value[i] = 0
        self._data.clear()


@contextmanager
def secret_bundle(values: Dict[str, str]) -> Generator[SecretBundle, None, None]:
    bundle = SecretBundle(values)
    try:
        yield bundle
    finally:
        bundle.wipe()
