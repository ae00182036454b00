import pytest
from fastapi.testclient import TestClient

from proof_server import storage
from proof_server.main import app
from proof_server.notifications import NotificationSink, get_sink


class RecordingSink(NotificationSink):
    def __init__(self):
        self.events = []

    def send(self, event, payload):
        self.events.append((event, payload))


@pytest.fixture(autouse=True)
def tmp_data_dir(tmp_path, monkeypatch):
    """Redirect all storage reads/writes to a temporary directory."""
    monkeypatch.setattr(storage, 'DATA_DIR', str(tmp_path))
    return tmp_path


@pytest.fixture()
def sink():
    recording = RecordingSink()
    app.dependency_overrides[get_sink] = lambda: recording
    yield recording
    app.dependency_overrides.pop(get_sink, None)


@pytest.fixture()
def client(sink):
    return TestClient(app)


@pytest.fixture()
def proof_id(client):
    resp = client.post("/api/proofs", json={"fileRef": "https://cdn.example/bat-v1.pdf", "meta": {"client": "ACME"}})
    assert resp.status_code == 200
    return resp.json()["id"]