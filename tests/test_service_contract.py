from fastapi.testclient import TestClient

from service.app import app

client = TestClient(app)

STEP = [0.0] * 10 + [10.0] * 60


def test_health():
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert "X-Service-MS" in r.headers


def test_classify_step():
    r = client.post("/classify", json={"samples": STEP, "n": 10, "ewma": 0.1, "tcrit_u": 3.2, "tcrit_l": 1.0})
    assert r.status_code == 200
    body = r.json()
    assert body["n_points"] == len(STEP)
    rows = body["rows"]
    assert len(rows) == len(STEP)
    assert rows[0]["tstat"] is None
    assert [row["regime"] for row in rows[:9]] == ["unknown"] * 9
    assert rows[9]["regime"] == "steady"
    assert "transient" in {row["regime"] for row in rows[10:]}
    assert body["params"]["n"] == 10


def test_classify_uses_config_defaults():
    r = client.post("/classify", json={"samples": [1.0, 2.0, 3.0]})
    assert r.status_code == 200
    assert r.json()["params"]["tcrit_u"] == 3.2


def test_classify_rejects_bad_config():
    r = client.post("/classify", json={"samples": [1.0, 2.0], "n": 3})
    assert r.status_code == 422
    r = client.post("/classify", json={"samples": []})
    assert r.status_code == 422


def test_classify_rejects_bad_samples():
    r = client.post("/classify", json={"samples": [1.0, "abc"]})
    assert r.status_code == 422


def test_stream_and_drop():
    sid = "stream-test"
    client.delete(f"/stream/{sid}")
    last = None
    for k, x in enumerate([0.0] * 12):
        r = client.post("/stream", json={"series_id": sid, "x": x})
        assert r.status_code == 200
        last = r.json()
        assert last["index"] == k + 1
    assert last["series_id"] == sid
    assert last["warmup"] is False
    assert last["regime"] == "steady"

    assert client.delete(f"/stream/{sid}").status_code == 200
    assert client.delete(f"/stream/{sid}").status_code == 404

    # fresh state after drop
    r = client.post("/stream", json={"series_id": sid, "x": 1.0})
    assert r.json()["index"] == 1
    assert r.json()["tstat"] is None


def test_metrics_exposed():
    client.post("/stream", json={"x": 0.0})
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "requests_total" in r.text


def test_classify_overflow_reports_index():
    r = client.post("/classify", json={"samples": [0.0, 1.0, 1e200]})
    assert r.status_code == 422
    assert r.json()["index"] == 2


def test_stream_recovers_after_rejected_sample():
    sid = "recover-test"
    client.delete(f"/stream/{sid}")
    assert client.post("/stream", json={"series_id": sid, "x": 0.0}).status_code == 200
    assert client.post("/stream", json={"series_id": sid, "x": 1e200}).status_code == 422
    codes = [client.post("/stream", json={"series_id": sid, "x": 1.0}).status_code for _ in range(5)]
    assert codes == [200] * 5
    r = client.post("/stream", json={"series_id": sid, "x": 1.0})
    assert r.json()["index"] == 7


def test_metrics_count_indicator_changes():
    sid = "metrics-test"
    client.delete(f"/stream/{sid}")
    for _ in range(12):
        client.post("/stream", json={"series_id": sid, "x": 0.0})
    r = client.get("/metrics")
    assert 'indicator_changes_total{to="steady"}' in r.text


def test_series_lru_eviction(monkeypatch):
    import service.app as appmod

    monkeypatch.setattr(appmod, "_MAX_SERIES", 2)
    for sid in ("lru-a", "lru-b", "lru-c"):
        assert client.post("/stream", json={"series_id": sid, "x": 1.0}).status_code == 200
    assert client.delete("/stream/lru-a").status_code == 404
    assert client.delete("/stream/lru-b").status_code == 200
    assert client.delete("/stream/lru-c").status_code == 200
