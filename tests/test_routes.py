"""Tests for the web API routes."""

from unittest.mock import MagicMock

import pytest

from ledger.store import FileStore, MemoryStore, StorageReadError, StorageWriteError
from web.app import create_app


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app(store):
    app = create_app(store=store)
    app.config['TESTING'] = True
    app.config['LEDGER_API_KEY'] = None
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def signed_in(client):
    with client.session_transaction() as sess:
        sess['user'] = {'email': 'alice@example.com', 'name': 'Alice'}
    return client


def new_match(a="alice", b="bob", outcome="AWins"):
    return {'participantA': a, 'participantB': b, 'outcome': outcome}


class TestGetMatches:
    """Tests for GET /api/matches."""

    def test_empty_ledger_is_empty_array(self, client):
        resp = client.get('/api/matches')
        assert resp.status_code == 200
        assert resp.get_json() == []

    def test_reports_backend(self, client):
        resp = client.get('/api/matches')
        assert resp.headers['X-Ledger-Backend'] == 'memory'
        assert 'X-Ledger-Read-Error' not in resp.headers

    def test_short_path_alias(self, signed_in):
        signed_in.post('/api/matches', json=new_match())
        resp = signed_in.get('/matches')
        assert resp.status_code == 200
        assert len(resp.get_json()) == 1

    def test_non_utf8_ledger_file_serves_empty_array_and_accepts_writes(self, tmp_path):
        path = tmp_path / "matches.json"
        path.write_bytes(b'\xff\xfe[\x80garbage')
        client = create_app(store=FileStore(path)).test_client()
        with client.session_transaction() as sess:
            sess['user'] = {'email': 'alice@example.com'}

        resp = client.get('/api/matches')
        assert resp.status_code == 200
        assert resp.get_json() == []

        resp = client.post('/api/matches', json=new_match())
        assert resp.status_code == 200
        assert len(resp.get_json()) == 1

    def test_read_failure_serves_empty_array(self):
        broken = MagicMock()
        broken.name = 'kv'
        broken.read.side_effect = StorageReadError("KV unreachable")
        client = create_app(store=broken).test_client()

        resp = client.get('/api/matches')
        assert resp.status_code == 200
        assert resp.get_json() == []
        assert resp.headers['X-Ledger-Backend'] == 'kv'
        assert resp.headers['X-Ledger-Read-Error'] == '1'


class TestPostMatches:
    """Tests for POST /api/matches."""

    def test_requires_session(self, client, store):
        resp = client.post('/api/matches', json=new_match())
        assert resp.status_code == 401
        assert resp.get_json() == {'error': 'unauthorized'}
        assert store.read() == []

    def test_records_match_and_returns_full_array(self, signed_in):
        signed_in.post('/api/matches', json=new_match())
        resp = signed_in.post('/api/matches', json=new_match("carol", "dave", "Draw"))

        assert resp.status_code == 200
        body = resp.get_json()
        assert isinstance(body, list)
        assert [m['participantA'] for m in body] == ["alice", "carol"]
        assert set(body[0]) == {'participantA', 'participantB', 'outcome', 'recordedAt'}
        assert body[1]['outcome'] == 'Draw'

    def test_api_key_accepted(self, app, client):
        app.config['LEDGER_API_KEY'] = 'secret'
        resp = client.post('/api/matches', json=new_match(), headers={'X-API-Key': 'secret'})
        assert resp.status_code == 200

    def test_wrong_api_key_rejected(self, app, client):
        app.config['LEDGER_API_KEY'] = 'secret'
        resp = client.post('/api/matches', json=new_match(), headers={'X-API-Key': 'guess'})
        assert resp.status_code == 401

    def test_api_key_disabled_when_not_configured(self, client):
        resp = client.post('/api/matches', json=new_match(), headers={'X-API-Key': ''})
        assert resp.status_code == 401

    def test_same_participant_is_400(self, signed_in, store):
        resp = signed_in.post('/api/matches', json=new_match("alice", "alice"))
        assert resp.status_code == 400
        assert 'error' in resp.get_json()
        assert store.read() == []

    def test_unknown_outcome_is_400(self, signed_in):
        resp = signed_in.post('/api/matches', json=new_match(outcome="forfeit"))
        assert resp.status_code == 400

    def test_missing_body_is_400(self, signed_in):
        resp = signed_in.post('/api/matches', data="not json", content_type='text/plain')
        assert resp.status_code == 400
        assert resp.get_json() == {'error': 'missing JSON body'}

    def test_array_body_is_400(self, signed_in):
        resp = signed_in.post('/api/matches', json=[new_match()])
        assert resp.status_code == 400

    def test_write_failure_is_500(self):
        failing = MagicMock()
        failing.name = 'kv'
        failing.read.return_value = []
        failing.write.side_effect = StorageWriteError("KV unreachable")
        client = create_app(store=failing).test_client()
        with client.session_transaction() as sess:
            sess['user'] = {'email': 'alice@example.com'}

        resp = client.post('/api/matches', json=new_match())
        assert resp.status_code == 500
        assert resp.get_json() == {'error': 'Failed to save matches'}

    def test_read_failure_on_write_is_503(self):
        broken = MagicMock()
        broken.name = 'kv'
        broken.read.side_effect = StorageReadError("KV unreachable")
        client = create_app(store=broken).test_client()
        with client.session_transaction() as sess:
            sess['user'] = {'email': 'alice@example.com'}

        resp = client.post('/api/matches', json=new_match())
        assert resp.status_code == 503
        broken.write.assert_not_called()


class TestDeleteMatches:
    """Tests for DELETE /api/matches."""

    def test_requires_session(self, client):
        resp = client.delete('/api/matches?recordedAt=x')
        assert resp.status_code == 401

    def test_delete_by_query_parameter(self, signed_in):
        first = signed_in.post('/api/matches', json=new_match()).get_json()[0]
        signed_in.post('/api/matches', json=new_match("carol", "dave"))

        resp = signed_in.delete('/api/matches', query_string={'recordedAt': first['recordedAt']})
        assert resp.status_code == 200
        assert [m['participantA'] for m in resp.get_json()] == ["carol"]

    def test_delete_by_body_field(self, signed_in):
        first = signed_in.post('/api/matches', json=new_match()).get_json()[0]
        resp = signed_in.delete('/api/matches', json={'recordedAt': first['recordedAt']})
        assert resp.status_code == 200
        assert resp.get_json() == []

    def test_unknown_identifier_returns_unchanged_array(self, signed_in):
        before = signed_in.post('/api/matches', json=new_match()).get_json()
        resp = signed_in.delete('/api/matches?recordedAt=1999-01-01T00:00:00.000Z')
        assert resp.status_code == 200
        assert resp.get_json() == before

    def test_missing_identifier_is_400(self, signed_in):
        resp = signed_in.delete('/api/matches')
        assert resp.status_code == 400
        assert 'error' in resp.get_json()


class TestMethodNotAllowed:
    """Unsupported methods are rejected with an Allow header."""

    def test_put_is_405(self, client):
        resp = client.put('/api/matches', json=new_match())
        assert resp.status_code == 405
        allowed = {m.strip() for m in resp.headers['Allow'].split(',')}
        assert {'GET', 'POST', 'DELETE'} <= allowed

    def test_ratings_are_read_only(self, client):
        resp = client.post('/api/ratings')
        assert resp.status_code == 405


class TestRatings:
    """Tests for GET /api/ratings."""

    def test_empty(self, client):
        resp = client.get('/api/ratings')
        assert resp.status_code == 200
        assert resp.get_json() == {'ratings': {}, 'leaderboard': []}

    def test_derived_from_ledger(self, signed_in):
        signed_in.post('/api/matches', json=new_match())
        resp = signed_in.get('/api/ratings')

        body = resp.get_json()
        assert body['ratings'] == {'alice': 1216, 'bob': 1184}
        assert body['leaderboard'] == [
            {'participant': 'alice', 'rating': 1216},
            {'participant': 'bob', 'rating': 1184},
        ]
        assert resp.headers['X-Ledger-Backend'] == 'memory'

    def test_rederived_after_delete(self, signed_in):
        first = signed_in.post('/api/matches', json=new_match()).get_json()[0]
        signed_in.delete('/api/matches', query_string={'recordedAt': first['recordedAt']})
        assert signed_in.get('/api/ratings').get_json()['ratings'] == {}
