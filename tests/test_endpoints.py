"""Tests for the ingestor API endpoints."""

import pytest
from fastapi.testclient import TestClient

from ingestor import service_locator
from ingestor.chunker import identify
from ingestor.main import app
from ingestor.types import FileStatus


@pytest.fixture
def client(store, lifecycle, source, settings_store):
    """Create a test client wired to temporary storage, without starting the dispatch loop."""
    service_locator.set_checkpoint_store(store)
    service_locator.set_lifecycle(lifecycle)
    service_locator.set_source(source)
    service_locator.set_settings_store(settings_store)
    return TestClient(app)


def _finish(store, lifecycle, content_hash):
    lifecycle.begin(store.get_file_record(content_hash))
    for index in store.list_pending_chunks(content_hash, store.get_file_record(content_hash).total_chunks):
        store.record_chunk_done(content_hash, index)
    lifecycle.finalize(content_hash, store.get_file_record(content_hash).total_chunks)


def test_root_endpoint(client):
    response = client.get('/')
    assert response.status_code == 200
    assert response.json()['status'] == 'running'
    assert 'X-Request-ID' in response.headers


def test_ready_reports_stopped_loop(client):
    response = client.get('/ready')
    assert response.status_code == 503
    data = response.json()
    assert data['database'] == 'ok'
    assert data['dispatch_loop'] == 'stopped'


class TestUpload:
    def test_upload_queues_new_content(self, client, store, watch_dir):
        response = client.post('/files', files={'file': ('notes.txt', b'alpha\nbeta\n')})

        assert response.status_code == 202
        data = response.json()
        assert data['duplicate'] is False
        assert data['file']['status'] == 'queued'
        assert data['file']['progress'] == '0/1'
        assert (watch_dir / 'notes.txt').read_bytes() == b'alpha\nbeta\n'
        assert store.get_file_record(identify(b'alpha\nbeta\n')) is not None

    def test_upload_known_content_is_duplicate(self, client, store, lifecycle, watch_dir):
        client.post('/files', files={'file': ('notes.txt', b'alpha\n')})
        _finish(store, lifecycle, identify(b'alpha\n'))

        response = client.post('/files', files={'file': ('other-name.txt', b'alpha\n')})

        assert response.status_code == 200
        data = response.json()
        assert data['duplicate'] is True
        assert data['file']['filename'] == 'notes.txt'
        assert data['file']['status'] == 'completed'
        assert not (watch_dir / 'other-name.txt').exists()

    def test_upload_unsupported_extension(self, client):
        response = client.post('/files', files={'file': ('image.png', b'\x89PNG')})

        assert response.status_code == 400
        assert response.json()['code'] == 'UNSUPPORTED_INPUT'

    def test_upload_binary_content(self, client, store):
        response = client.post('/files', files={'file': ('data.txt', b'abc\x00def')})

        assert response.status_code == 400
        assert response.json()['code'] == 'UNSUPPORTED_INPUT'
        assert store.list_file_records() == []

    def test_upload_hidden_name(self, client):
        response = client.post('/files', files={'file': ('.secret.txt', b'x\n')})

        assert response.status_code == 400

    def test_upload_write_failure(self, client, source, store, monkeypatch):
        def broken_submit(name, data):
            raise PermissionError("watch directory is read-only")

        monkeypatch.setattr(source, "submit", broken_submit)

        response = client.post('/files', files={'file': ('notes.txt', b'alpha\n')})

        assert response.status_code == 503
        assert response.json()['code'] == 'INPUT_UNAVAILABLE'
        assert store.list_file_records() == []

    def test_upload_before_initialization(self, client):
        service_locator.set_source(None)

        response = client.post('/files', files={'file': ('notes.txt', b'x\n')})

        assert response.status_code == 503


class TestFileRecords:
    def test_list_and_filter(self, client, store):
        store.upsert_file_record('aaa', 'a.txt', 10, 1, 64)
        store.upsert_file_record('bbb', 'b.txt', 10, 2, 64)
        store.set_file_status('bbb', FileStatus.PROCESSING)

        all_files = client.get('/files').json()['files']
        processing = client.get('/files', params={'status': 'processing'}).json()['files']

        assert {f['content_hash'] for f in all_files} == {'aaa', 'bbb'}
        assert [f['content_hash'] for f in processing] == ['bbb']

    def test_list_rejects_unknown_status(self, client):
        assert client.get('/files', params={'status': 'paused'}).status_code == 422

    def test_get_shows_progress(self, client, store):
        store.upsert_file_record('aaa', 'a.txt', 10, 3, 64)
        store.set_file_status('aaa', FileStatus.PROCESSING)
        store.record_chunk_done('aaa', 0)

        response = client.get('/files/aaa')

        assert response.status_code == 200
        assert response.json()['progress'] == '1/3'

    def test_get_missing(self, client):
        response = client.get('/files/missing')

        assert response.status_code == 404
        assert response.json()['code'] == 'FILE_NOT_FOUND'

    def test_delete_terminal_record(self, client, store, lifecycle):
        store.upsert_file_record('aaa', 'a.txt', 10, 0, 64)
        _finish(store, lifecycle, 'aaa')

        response = client.delete('/files/aaa')

        assert response.status_code == 200
        assert response.json()['deleted'] is True
        assert store.get_file_record('aaa') is None

    def test_delete_in_progress_record(self, client, store):
        store.upsert_file_record('aaa', 'a.txt', 10, 2, 64)

        response = client.delete('/files/aaa')

        assert response.status_code == 409
        assert response.json()['code'] == 'FILE_BUSY'

    def test_delete_missing(self, client):
        assert client.delete('/files/missing').status_code == 404


class TestConfig:
    def test_get_config(self, client):
        response = client.get('/config')

        assert response.status_code == 200
        assert response.json()['chunk_target_size'] == 64

    def test_partial_update(self, client, settings_store):
        response = client.put('/config', json={'enabled': False})

        assert response.status_code == 200
        data = response.json()
        assert data['enabled'] is False
        assert data['chunk_target_size'] == 64
        assert settings_store.current().enabled is False

    def test_invalid_update(self, client, settings_store):
        response = client.put('/config', json={'poll_interval': 0})

        assert response.status_code == 400
        assert response.json()['code'] == 'INVALID_SETTINGS'
        assert settings_store.current().poll_interval == 0.05
