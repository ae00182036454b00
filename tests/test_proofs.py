def test_create_proof(client):
    resp = client.post("/api/proofs", json={"fileRef": "https://cdn.example/a.pdf", "meta": {"client": "ACME"}})
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"]
    assert data["versionId"]
    assert data["clientUrl"] == f"http://127.0.0.1:5174/?mode=client&id={data['id']}"


def test_create_proof_without_file_ref(client):
    resp = client.post("/api/proofs", json={"meta": {}})
    assert resp.status_code == 400
    assert "fileRef" in resp.json()["detail"]


def test_get_proof(client, proof_id):
    resp = client.get(f"/api/proofs/{proof_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == proof_id
    assert data["fileRef"] == "https://cdn.example/bat-v1.pdf"
    assert data["meta"] == {"client": "ACME"}
    assert data["locked"] is False
    assert data.get("approvedAt") is None
    assert data["currentVersion"]["sequenceNumber"] == 1


def test_get_unknown_proof(client):
    resp = client.get("/api/proofs/nope")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Proof not found: nope"


def test_put_meta_replaces(client, proof_id):
    resp = client.put(f"/api/proofs/{proof_id}/meta", json={"format": "A4"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert client.get(f"/api/proofs/{proof_id}").json()["meta"] == {"format": "A4"}


def test_put_meta_unknown_proof(client):
    assert client.put("/api/proofs/nope/meta", json={}).status_code == 404


def test_approve_and_unlock(client, proof_id, sink):
    sink.events.clear()
    resp = client.post(f"/api/proofs/{proof_id}/approve")
    assert resp.status_code == 200
    data = resp.json()
    assert data["locked"] is True
    assert data["approvedAt"]

    state = client.get(f"/api/proofs/{proof_id}").json()
    assert state["locked"] is True
    assert state["approvedAt"] == data["approvedAt"]
    assert [e for e, _ in sink.events] == ["proof.approved"]
    assert sink.events[0][1]["proofId"] == proof_id

    resp = client.post(f"/api/proofs/{proof_id}/unlock")
    assert resp.status_code == 200
    assert resp.json()["locked"] is False
    state = client.get(f"/api/proofs/{proof_id}").json()
    assert state["locked"] is False
    assert state.get("approvedAt") is None


def test_approve_unknown_proof(client, sink):
    assert client.post("/api/proofs/nope/approve").status_code == 404
    assert client.post("/api/proofs/nope/unlock").status_code == 404
    assert sink.events == []


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_create_proof_notifies_first_revision(client, sink):
    created = client.post("/api/proofs", json={"fileRef": "https://cdn.example/a.pdf"}).json()
    assert [e for e, _ in sink.events] == ["version.created"]
    payload = sink.events[0][1]
    assert payload["proofId"] == created["id"]
    assert payload["versionId"] == created["versionId"]
    assert payload["version"]["sequenceNumber"] == 1


def test_rejected_proof_does_not_notify(client, sink):
    client.post("/api/proofs", json={"meta": {}})
    assert sink.events == []
