"""Firestore Client - Cloud-backed key-value store.

This module handles all database I/O for the Firestore backend.
All I/O is contained here; business logic is in the core module.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from google.cloud import firestore

from ..core.errors import PersistenceError


logger = logging.getLogger(__name__)


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        device_id: Document grouping this device's keys
    """

    project_id: str | None = None
    database: str | None = None
    device_id: str = "default"


class FirestoreKeyValueStore:
    """Key-value store persisting each key as its own Firestore document.

    Document structure:
        devices/{device_id}/
            kv/{key}: { value, updated_at }
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.config.project_id:
                kwargs["project"] = self.config.project_id
            if self.config.database:
                kwargs["database"] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _key_ref(self, key: str) -> firestore.DocumentReference:
        """Get reference to the document holding a key."""
        return (
            self.client.collection("devices")
            .document(self.config.device_id)
            .collection("kv")
            .document(key)
        )

    def get(self, key: str) -> str | None:
        """Fetch a value.

        Args:
            key: Storage key

        Returns:
            Stored string, or None if the key is absent

        Raises:
            PersistenceError: If Firestore cannot be reached
        """
        logger.debug("Fetching key: %s", key)
        try:
            doc = self._key_ref(key).get()
        except Exception as e:
            raise PersistenceError(f"Failed to fetch {key}: {e}") from e
        if not doc.exists:
            return None
        value = (doc.to_dict() or {}).get("value")
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> bool:
        """Store a value.

        Returns:
            True if successful
        """
        logger.info("Saving key: %s", key)
        try:
            self._key_ref(key).set({
                "value": value,
                "updated_at": datetime.now(timezone.utc),
            })
            return True
        except Exception as e:
            logger.error("Failed to save %s: %s", key, str(e))
            return False

    def remove(self, key: str) -> bool:
        """Delete a value. Deleting an absent key succeeds.

        Returns:
            True if successful
        """
        logger.info("Removing key: %s", key)
        try:
            self._key_ref(key).delete()
            return True
        except Exception as e:
            logger.error("Failed to remove %s: %s", key, str(e))
            return False
