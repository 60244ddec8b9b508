"""Subscriber directory with JSON persistence."""

import json
import logging
import re
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from ..models.listing import Client, SearchQuery

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def generate_client_id() -> str:
    return f"client_{secrets.token_hex(16)}"


def _validate(name: str, email: Optional[str], criteria: SearchQuery) -> None:
    if not name or not name.strip():
        raise ValueError("Name cannot be empty")
    if email is not None and not _EMAIL.match(email):
        raise ValueError("Invalid email format")
    if not criteria.location:
        raise ValueError("Search criteria must include a location")


class ClientStore:
    """Manage alert subscribers with JSON persistence.

    Stores clients in a JSON file keyed by client ID. Supports CRUD
    operations; lookups of unknown IDs return None rather than raising.

    Example:
        store = ClientStore()
        client = store.add("Jane", "jane@example.com", {"location": "London"})
        clients = store.list_all()
    """

    def __init__(self, path: Optional[Path] = None):
        """Initialize store with file path.

        Args:
            path: Path to JSON file. Defaults to ~/.homefinder/clients.json
        """
        if path is None:
            path = Path.home() / ".homefinder" / "clients.json"
        self.path = Path(path)
        self._ensure_dir()

    def _ensure_dir(self) -> None:
        """Create the parent directory if it doesn't exist."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _load_all_data(self) -> dict[str, dict]:
        """Load all clients from the JSON file."""
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
                return data.get("clients", {})
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load clients: {e}")
            return {}

    def _save_all_data(self, clients: dict[str, dict]) -> None:
        """Save all clients to the JSON file."""
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({"clients": clients}, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save clients: {e}")
            raise

    def add(
        self,
        name: str,
        email: Optional[str],
        search_criteria: Union[SearchQuery, dict[str, Any]],
    ) -> Client:
        """Create and persist a new client.

        Args:
            name: Display name
            email: Notification address (optional)
            search_criteria: Saved search; must include a location

        Returns:
            The created Client

        Raises:
            ValueError: If name, email or criteria are invalid
        """
        criteria = SearchQuery.model_validate(search_criteria)
        _validate(name, email, criteria)

        client = Client(
            id=generate_client_id(),
            name=name.strip(),
            email=email,
            search_criteria=criteria,
        )

        all_data = self._load_all_data()
        all_data[client.id] = client.model_dump(mode="json", by_alias=True)
        self._save_all_data(all_data)

        logger.info(f"Added client: {client.name} ({client.id})")
        return client

    def get(self, client_id: str) -> Optional[Client]:
        """Load a client by ID, or None if not found."""
        record = self._load_all_data().get(client_id)
        if record is None:
            return None

        try:
            return Client.model_validate(record)
        except ValueError as e:
            logger.warning(f"Failed to parse client {client_id}: {e}")
            return None

    def list_all(self) -> list[Client]:
        """List all clients, sorted by name."""
        clients = []

        for record in self._load_all_data().values():
            try:
                clients.append(Client.model_validate(record))
            except ValueError as e:
                logger.warning(f"Failed to parse client: {e}")

        return sorted(clients, key=lambda c: c.name)

    def update(
        self,
        client_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        search_criteria: Union[SearchQuery, dict[str, Any], None] = None,
    ) -> Optional[Client]:
        """Update fields of an existing client.

        Args:
            client_id: ID of the client to update
            name: New name, if changing
            email: New email, if changing
            search_criteria: New saved search, if changing

        Returns:
            The updated Client, or None if not found

        Raises:
            ValueError: If an updated field is invalid
        """
        client = self.get(client_id)
        if client is None:
            return None

        if name is not None:
            client.name = name.strip()
        if email is not None:
            client.email = email
        if search_criteria is not None:
            client.search_criteria = SearchQuery.model_validate(search_criteria)

        _validate(client.name, client.email, client.search_criteria)
        client.updated_at = datetime.now(timezone.utc)

        all_data = self._load_all_data()
        all_data[client.id] = client.model_dump(mode="json", by_alias=True)
        self._save_all_data(all_data)

        logger.info(f"Updated client: {client.name} ({client.id})")
        return client

    def delete(self, client_id: str) -> bool:
        """Delete a client by ID.

        Returns:
            True if deleted, False if not found
        """
        all_data = self._load_all_data()

        if client_id not in all_data:
            return False

        del all_data[client_id]
        self._save_all_data(all_data)
        logger.info(f"Deleted client: {client_id}")
        return True
