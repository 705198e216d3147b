"""Tests for uriservice.client.UriServiceClient lifecycle."""

import pytest

from uriservice import UriServiceClient, __version__
from uriservice.core.errors import ClientDisconnectedError, InvalidOptsError


class TestConstruction:
    def test_from_mapping(self, settings):
        client = UriServiceClient(settings.model_dump())
        try:
            assert client.local_uri_base == "http://id.example.com/term/"
            assert client.temporary_uri_base == "http://id.example.com/temporary/"
        finally:
            client.disconnect()

    def test_missing_option(self, settings):
        opts = settings.model_dump()
        del opts["temporary_uri_base"]
        with pytest.raises(InvalidOptsError, match=r"opts\['temporary_uri_base'\]"):
            UriServiceClient(opts)

    def test_from_config(self, config_file):
        with UriServiceClient.from_config(config_file, "test") as client:
            assert client.settings.database.pool_size == 2
            client.test_connection()

    def test_version(self):
        assert __version__


class TestLifecycle:
    def test_required_tables(self, settings):
        with UriServiceClient(settings) as client:
            assert not client.required_tables_exist()
            client.create_required_tables()
            assert client.required_tables_exist()
            client.create_required_tables()
            assert client.required_tables_exist()

    def test_connected(self, client):
        assert client.connected()
        client.disconnect()
        assert not client.connected()

    def test_disconnect_is_idempotent(self, client):
        client.disconnect()
        client.disconnect()

    def test_use_after_disconnect(self, client, vocabulary):
        client.disconnect()
        with pytest.raises(ClientDisconnectedError):
            client.list_vocabularies()
        with pytest.raises(ClientDisconnectedError):
            client.search_terms(vocabulary, "x")
        with pytest.raises(ClientDisconnectedError):
            client.test_connection()

    def test_temporary_uri_without_connection(self, client):
        client.disconnect()
        uri = client.generate_uri_for_temporary_term("names", "Smith, John")
        assert uri.startswith(client.temporary_uri_base)

    def test_data_survives_reconnect(self, settings):
        with UriServiceClient(settings) as client:
            client.create_required_tables()
            client.create_vocabulary("names", "Names")
            client.create_term("temporary", "names", "Smith, John")
        with UriServiceClient(settings) as client:
            assert client.find_vocabulary("names") is not None
            assert [t.value for t in client.list_terms("names")] == ["Smith, John"]
