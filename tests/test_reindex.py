"""Tests for uriservice.reindex."""

import pytest
from sqlalchemy import delete, select

from uriservice.core.errors import SearchIndexError
from uriservice.core.orm import TermTable, session_scope
from uriservice.documents import to_index_document
from uriservice.reindex import Reindexer


def seed(client, vocabulary, n):
    for i in range(n):
        client.create_term("external", vocabulary, f"Name {i}", f"http://example.org/{i}")


class TestReindexAll:
    def test_restores_lost_documents(self, client, vocabulary):
        seed(client, vocabulary, 3)
        client.index.delete_all()
        assert client.list_terms(vocabulary) == []
        assert client.reindex_all() == 3
        assert len(client.list_terms(vocabulary)) == 3

    def test_clear_removes_stale_documents(self, client, vocabulary):
        """Rows deleted behind the index's back stay visible until a clearing reindex."""
        seed(client, vocabulary, 3)
        with session_scope(client.session_factory) as session:
            session.execute(delete(TermTable).where(TermTable.vocabulary_string_key == vocabulary))
        assert len(client.list_terms(vocabulary)) == 3
        assert client.reindex_all(clear=True) == 0
        assert client.list_terms(vocabulary) == []

    def test_without_clear_keeps_stale_documents(self, client, vocabulary):
        seed(client, vocabulary, 2)
        with session_scope(client.session_factory) as session:
            session.execute(delete(TermTable).where(TermTable.uri == "http://example.org/0"))
        client.reindex_all()
        assert len(client.list_terms(vocabulary)) == 2

    def test_pages_and_progress(self, client, vocabulary):
        seed(client, vocabulary, 5)
        client.index.delete_all()
        reindexer = Reindexer(client.session_factory, client.index, page_size=2)
        calls = []
        assert reindexer.reindex_all(progress=lambda done, total: calls.append((done, total))) == 5
        assert calls == [(2, 5), (4, 5), (5, 5)]
        assert client.index.count(vocabulary) == 5

    def test_failure_leaves_index_untouched(self, client, vocabulary, monkeypatch):
        seed(client, vocabulary, 2)
        converted = []

        def failing_conversion(term):
            converted.append(term.uri)
            if len(converted) == 2:
                raise SearchIndexError("disk full")
            return to_index_document(term)

        monkeypatch.setattr("uriservice.reindex.to_index_document", failing_conversion)
        with pytest.raises(SearchIndexError):
            client.reindex_all(clear=True)
        assert client.index.staged_count() == 0
        assert len(client.list_terms(vocabulary)) == 2

    def test_failure_keeps_deferred_writes_of_other_callers(self, client, vocabulary, monkeypatch):
        seed(client, vocabulary, 2)
        client.delete_term("http://example.org/0", commit=False)

        def failing_conversion(term):
            raise SearchIndexError("disk full")

        monkeypatch.setattr("uriservice.reindex.to_index_document", failing_conversion)
        with pytest.raises(SearchIndexError):
            client.reindex_all()
        assert client.index.pending_count == 1
        client.commit_index()
        assert client.find_term_by_uri("http://example.org/0") is None

    def test_deferred_writes_are_not_published_by_reindex(self, client, vocabulary):
        seed(client, vocabulary, 2)
        client.delete_term("http://example.org/0", commit=False)
        client.reindex_all()
        assert client.index.pending_count == 1
        client.commit_index()
        assert [t.uri for t in client.list_terms(vocabulary)] == ["http://example.org/1"]

    def test_pages_are_staged_not_held(self, client, vocabulary):
        seed(client, vocabulary, 5)
        reindexer = Reindexer(client.session_factory, client.index, page_size=2)
        staged = []
        reindexer.reindex_all(progress=lambda done, total: staged.append(client.index.staged_count()))
        assert staged == [2, 4, 5]
        assert client.index.staged_count() == 0


class TestConcurrentWrites:
    """Repository writes made while a reindex runs keep their index state."""

    def test_term_created_mid_reindex_survives_clear(self, client, vocabulary):
        seed(client, vocabulary, 5)
        reindexer = Reindexer(client.session_factory, client.index, page_size=2)
        visible = []

        def create_once(done, total):
            if done == 2:
                client.create_term("external", vocabulary, "Late", "http://example.org/late")
            visible.append(len(client.list_terms(vocabulary)))

        reindexer.reindex_all(clear=True, progress=create_once)
        assert visible and min(visible) >= 5
        uris = {t.uri for t in client.list_terms(vocabulary)}
        assert len(uris) == 6
        assert "http://example.org/late" in uris

    def test_term_deleted_mid_reindex_stays_deleted(self, client, vocabulary):
        seed(client, vocabulary, 4)
        reindexer = Reindexer(client.session_factory, client.index, page_size=2)

        def delete_after_first_page(done, total):
            if done == 2:
                client.delete_term("http://example.org/0")

        reindexer.reindex_all(clear=True, progress=delete_after_first_page)
        assert client.find_term_by_uri("http://example.org/0") is None
        assert client.index.count(vocabulary) == 3

    def test_value_updated_mid_reindex_wins(self, client, vocabulary):
        seed(client, vocabulary, 4)
        reindexer = Reindexer(client.session_factory, client.index, page_size=2)

        def rename_after_first_page(done, total):
            if done == 2:
                client.update_term_value("http://example.org/1", "Renamed")

        reindexer.reindex_all(progress=rename_after_first_page)
        assert client.find_term_by_uri("http://example.org/1").value == "Renamed"


class TestSessionSnapshots:
    def test_rows_stay_readable_after_commit(self, client, vocabulary):
        seed(client, vocabulary, 1)
        with session_scope(client.session_factory) as session:
            row = session.scalars(select(TermTable)).one()
        assert row.uri == "http://example.org/0"

    def test_factory_keeps_attributes_after_commit(self, client):
        with client.session_factory() as session:
            assert session.expire_on_commit is False
