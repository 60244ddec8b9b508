"""Tests for the JSON client store."""

import json

import pytest

from homefinder.alerts.clients import ClientStore
from homefinder.models.listing import SearchQuery


@pytest.fixture
def store(tmp_path) -> ClientStore:
    """ClientStore backed by a temporary file."""
    return ClientStore(tmp_path / "clients.json")


class TestClientStore:
    """Test CRUD operations."""

    def test_add(self, store):
        client = store.add("Jane", "jane@example.com", {"location": "London", "maxPrice": 2000})

        assert client.id.startswith("client_")
        assert len(client.id) == len("client_") + 32
        assert client.search_criteria.max_price == 2000
        assert store.get(client.id) == client

    def test_file_format(self, store):
        client = store.add("Jane", "jane@example.com", SearchQuery(location="London"))

        data = json.loads(store.path.read_text())

        record = data["clients"][client.id]
        assert record["name"] == "Jane"
        assert record["searchCriteria"]["location"] == "London"

    def test_get_unknown(self, store):
        assert store.get("client_missing") is None

    def test_list_sorted_by_name(self, store):
        store.add("Zoe", None, {"location": "Leeds"})
        store.add("Adam", None, {"location": "York"})

        assert [c.name for c in store.list_all()] == ["Adam", "Zoe"]

    def test_persists_across_instances(self, store):
        client = store.add("Jane", None, {"location": "London"})

        reopened = ClientStore(store.path)

        assert reopened.get(client.id).name == "Jane"

    def test_update(self, store):
        client = store.add("Jane", None, {"location": "London"})

        updated = store.update(client.id, email="jane@example.com", search_criteria={"location": "Bristol"})

        assert updated.email == "jane@example.com"
        assert updated.search_criteria.location == "Bristol"
        assert updated.updated_at >= client.updated_at
        assert store.get(client.id).search_criteria.location == "Bristol"

    def test_update_unknown(self, store):
        assert store.update("client_missing", name="X") is None

    def test_delete(self, store):
        client = store.add("Jane", None, {"location": "London"})

        assert store.delete(client.id)
        assert not store.delete(client.id)
        assert store.list_all() == []

    def test_empty_file_missing(self, store):
        assert store.list_all() == []


class TestValidation:
    """Test input validation."""

    def test_requires_location(self, store):
        with pytest.raises(ValueError, match="location"):
            store.add("Jane", None, {"maxPrice": 2000})

    def test_rejects_bad_email(self, store):
        with pytest.raises(ValueError, match="email"):
            store.add("Jane", "not-an-email", {"location": "London"})

    def test_rejects_blank_name(self, store):
        with pytest.raises(ValueError, match="Name"):
            store.add("   ", None, {"location": "London"})

    def test_corrupt_file_reads_empty(self, store):
        store.path.write_text("{not json")

        assert store.list_all() == []
