import time


def _host_app(options=None, capacity=100):
    from fastapi import FastAPI, HTTPException
    from boardb.metrics import MetricsCollector
    from boardb.middleware import install_api_wrapper

    app = FastAPI()
    collector = MetricsCollector(capacity)

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/items/{item_id}")
    def item(item_id: int):
        return {"id": item_id}

    @app.get("/missing")
    def missing():
        raise HTTPException(status_code=404, detail="nope")

    @app.post("/echo")
    async def echo(payload: dict):
        return payload

    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom")

    install_api_wrapper(app, collector, options)
    return app, collector


def test_records_one_event_per_request():
    try:
        from fastapi.testclient import TestClient
    except Exception:
        return
    app, collector = _host_app()
    client = TestClient(app)
    before = int(time.time() * 1000)
    r = client.get("/items/7?verbose=1")
    after = int(time.time() * 1000)
    assert r.status_code == 200
    assert collector.get_count() == 1
    e = collector.get_all()[0]
    assert e.method == "GET"
    assert e.path == "/items/7"
    assert e.status_code == 200
    assert e.success is True
    assert e.response_time >= 0
    assert before <= e.timestamp <= after
    assert e.ip == "testclient"
    assert e.user_agent == "testclient"
    assert e.request_body is None
    assert e.headers is None


def test_default_exclusions_are_prefix_matched():
    try:
        from fastapi.testclient import TestClient
    except Exception:
        return
    app, collector = _host_app()
    client = TestClient(app)
    client.get("/health")
    client.get("/healthz-like")  # shares the /health prefix
    client.get("/favicon.ico")
    assert collector.get_count() == 0
    client.get("/items/1")
    assert collector.get_count() == 1


def test_custom_exclusions():
    try:
        from fastapi.testclient import TestClient
        from boardb.middleware import ApiWrapperOptions
    except Exception:
        return
    app, collector = _host_app(ApiWrapperOptions(exclude_paths=["/items"]))
    client = TestClient(app)
    client.get("/items/1")
    client.get("/health")
    assert [e.path for e in collector.get_all()] == ["/health"]


def test_failures_are_counted():
    try:
        from fastapi.testclient import TestClient
    except Exception:
        return
    app, collector = _host_app()
    client = TestClient(app, raise_server_exceptions=False)
    assert client.get("/missing").status_code == 404
    assert client.get("/boom").status_code == 500
    assert client.get("/items/1").status_code == 200
    s = collector.get_summary()
    assert (s.total_requests, s.success_requests, s.failed_requests) == (3, 1, 2)
    statuses = [e.status_code for e in collector.get_all()]
    assert statuses == [200, 500, 404]


def test_include_body_and_headers():
    try:
        from fastapi.testclient import TestClient
        from boardb.middleware import ApiWrapperOptions
    except Exception:
        return
    app, collector = _host_app(ApiWrapperOptions(include_body=True, include_headers=True))
    client = TestClient(app)
    r = client.post("/echo", json={"a": 1}, headers={"X-Trace": "abc"})
    assert r.status_code == 200 and r.json() == {"a": 1}
    e = collector.get_all()[0]
    assert e.request_body == {"a": 1}
    assert e.headers["x-trace"] == "abc"
    assert e.to_dict()["requestBody"] == {"a": 1}
    # GET without a body leaves request_body unset
    client.get("/items/2")
    assert collector.get_all()[0].request_body is None


def test_options_from_config():
    from boardb.middleware import ApiWrapperOptions

    opts = ApiWrapperOptions.from_config({"exclude_paths": ["/internal"], "include_body": 1})
    assert opts.exclude_paths == ["/internal"]
    assert opts.include_body is True
    assert opts.include_headers is False
    assert opts.is_excluded("/internal/x")
    assert not opts.is_excluded("/api/internal")
