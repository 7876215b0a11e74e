def _dashboard(max_entries=100):
    from fastapi.testclient import TestClient
    from boardb.core import BoarDB
    from boardb.metrics import MetricEvent

    boardb = BoarDB({"max_entries": max_entries, "exclude_paths": ["/health"]})
    for ts, method, path, status, rt in [
        (100, "GET", "/users", 200, 10),
        (200, "GET", "/users", 500, 30),
        (300, "POST", "/users", 201, 20),
    ]:
        boardb.metrics.add(MetricEvent.build(method, path, status, rt, ts))
    return boardb, TestClient(boardb.create_dashboard_app())


def test_summary_endpoint():
    try:
        boardb, client = _dashboard()
    except ImportError:
        return
    r = client.get("/api/metrics/summary")
    assert r.status_code == 200
    assert r.json() == {
        "totalRequests": 3,
        "successRequests": 2,
        "failedRequests": 1,
        "averageResponseTime": 20,
        "successRate": 67,
    }
    assert r.headers.get("X-Request-Id")


def test_endpoints_endpoint():
    try:
        boardb, client = _dashboard()
    except ImportError:
        return
    eps = client.get("/api/metrics/endpoints").json()
    assert eps[0] == {
        "method": "GET",
        "path": "/users",
        "count": 2,
        "successCount": 1,
        "failedCount": 1,
        "totalResponseTime": 40,
        "averageResponseTime": 20,
    }
    assert eps[1]["method"] == "POST" and eps[1]["count"] == 1


def test_recent_limit_parsing():
    try:
        boardb, client = _dashboard()
    except ImportError:
        return
    assert [e["timestamp"] for e in client.get("/api/metrics/recent?limit=2").json()] == [300, 200]
    # zero and junk fall back to the default of 10
    assert len(client.get("/api/metrics/recent?limit=0").json()) == 3
    assert len(client.get("/api/metrics/recent?limit=abc").json()) == 3
    assert len(client.get("/api/metrics/recent").json()) == 3


def test_recent_limit_reads_leading_integer():
    try:
        boardb, client = _dashboard()
    except ImportError:
        return
    from boardb.metrics import MetricEvent

    for ts in range(400, 800, 100):
        boardb.metrics.add(MetricEvent.build("GET", "/more", 200, 1, ts))
    assert boardb.metrics.get_count() == 7
    assert len(client.get("/api/metrics/recent?limit=5abc").json()) == 5
    # a negative limit drops that many of the oldest events
    recent = client.get("/api/metrics/recent?limit=-5").json()
    assert [e["timestamp"] for e in recent] == [700, 600]


def test_all_range_count_and_clear():
    try:
        boardb, client = _dashboard()
    except ImportError:
        return
    all_ = client.get("/api/metrics/all").json()
    assert [e["timestamp"] for e in all_] == [300, 200, 100]
    assert all_[0]["statusCode"] == 201 and all_[0]["success"] is True
    rng = client.get("/api/metrics/range", params={"start": 150, "end": 300}).json()
    assert [e["timestamp"] for e in rng] == [300, 200]
    assert client.get("/api/metrics/range").status_code == 422
    assert client.get("/api/metrics/count").json() == {"count": 3}
    assert client.delete("/api/metrics").json() == {"success": True}
    assert boardb.metrics.get_count() == 0
    assert client.get("/api/metrics/summary").json()["successRate"] == 0


def test_dashboard_requests_are_not_recorded():
    try:
        boardb, client = _dashboard()
    except ImportError:
        return
    client.get("/api/metrics/summary")
    client.get("/healthz")
    assert boardb.metrics.get_count() == 3


def test_healthz():
    try:
        boardb, client = _dashboard()
    except ImportError:
        return
    body = client.get("/healthz").json()
    assert body == {"status": "ok", "metrics_count": 3, "db_connected": False}


def test_static_dashboard_mount(tmp_path):
    try:
        from fastapi.testclient import TestClient
        from boardb.core import BoarDB
    except ImportError:
        return
    (tmp_path / "index.html").write_text("<html>boardb</html>")
    boardb = BoarDB({"frontend_dir": str(tmp_path)})
    client = TestClient(boardb.create_dashboard_app())
    r = client.get("/")
    assert r.status_code == 200 and "boardb" in r.text
    # API routes still win over the static mount
    assert client.get("/api/metrics/count").json() == {"count": 0}


def test_dashboard_deep_links_serve_index(tmp_path):
    try:
        from fastapi.testclient import TestClient
        from boardb.core import BoarDB
    except ImportError:
        return
    (tmp_path / "index.html").write_text("<html>boardb</html>")
    (tmp_path / "app.js").write_text("console.log('boardb')")
    boardb = BoarDB({"frontend_dir": str(tmp_path)})
    client = TestClient(boardb.create_dashboard_app())
    r = client.get("/metrics/endpoints")
    assert r.status_code == 200 and "<html>boardb</html>" in r.text
    assert "console.log" in client.get("/app.js").text
    assert client.get("/api/nope").status_code == 404
    assert client.get("/healthz").json()["status"] == "ok"
