"""Webhook secret encryption key.

The key is fetched once per process (cold start) and reused by every
invocation until the process dies. It is handed to processors as an
explicit dependency so tests can use a fixed key.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Protocol, Self

import boto3
import structlog

from event_relay.exceptions import EventRelayError

if TYPE_CHECKING:
    from mypy_boto3_secretsmanager import SecretsManagerClient

    from event_relay.config import Settings

log = structlog.get_logger(__name__)


class SecretNotFoundError(EventRelayError):
    """Secret not found or has no string value."""


class EncryptionKeyProvider(Protocol):
    def get_key(self) -> str: ...


class StaticKeyProvider:
    """Fixed key, for tests and local runs."""

    def __init__(self, key: str) -> None:
        self._key = key

    def get_key(self) -> str:
        return self._key


class SecretsManagerKeyProvider:
    """Lazily fetch the key from AWS Secrets Manager and keep it.

    Double-checked locking keeps concurrent first calls to a single fetch.
    """

    def __init__(self, client: SecretsManagerClient, secret_id: str) -> None:
        self._client = client
        self._secret_id = secret_id
        self._key: str | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> Self:
        if not settings.secret_encryption_key_id:
            raise SecretNotFoundError(
                "SECRET_ENCRYPTION_KEY / EVENT_RELAY_SECRET_ENCRYPTION_KEY_ID is not set"
            )
        client = boto3.client("secretsmanager", region_name=settings.aws_region)
        return cls(client, settings.secret_encryption_key_id)

    def get_key(self) -> str:
        # Fast path: already fetched (no lock needed)
        if self._key is not None:
            return self._key
        with self._lock:
            if self._key is None:
                self._key = self._fetch()
        return self._key

    def _fetch(self) -> str:
        try:
            response = self._client.get_secret_value(SecretId=self._secret_id)
        except self._client.exceptions.ResourceNotFoundException as e:
            raise SecretNotFoundError(f"secret {self._secret_id} not found") from e
        if "SecretString" not in response:
            raise SecretNotFoundError(f"secret {self._secret_id} has no string value")
        log.info("Fetched secret encryption key", secret_id=self._secret_id)
        return response["SecretString"]
