"""Credential adapter backed by the record store."""

import os

from dreem.config import API_KEY_ENV, API_KEY_NAMESPACE
from dreem.ports.record_store import RecordStore


class StoredCredential:
    """
    API key kept under its own namespace.

    Implements CredentialStore protocol. The environment variable, when set,
    takes precedence over the stored value.
    """

    def __init__(self, store: RecordStore, namespace: str = API_KEY_NAMESPACE):
        self.store = store
        self.namespace = namespace

    def get(self) -> str | None:
        env_value = os.environ.get(API_KEY_ENV, "").strip()
        if env_value:
            return env_value
        value = self.store.get_item(self.namespace)
        return value or None

    def set(self, secret: str) -> None:
        self.store.set_item(self.namespace, secret)
