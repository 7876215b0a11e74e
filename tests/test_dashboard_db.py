import pytest


@pytest.fixture()
def client(tmp_path):
    try:
        from fastapi.testclient import TestClient
        from boardb.core import BoarDB
    except ImportError:
        pytest.skip("fastapi not installed")
    boardb = BoarDB({"max_entries": 100})
    c = TestClient(boardb.create_dashboard_app())
    c.boardb = boardb  # type: ignore[attr-defined]
    c.db_url = f"sqlite:///{tmp_path / 'dash.db'}"  # type: ignore[attr-defined]
    yield c
    boardb.stop()


def _connect(client):
    r = client.post("/api/db/connect", json={"url": client.db_url})
    assert r.status_code == 200, r.text
    assert r.json() == {"success": True, "message": "Database connected successfully"}


def _create_users(client):
    r = client.post(
        "/api/db/table",
        json={
            "tableName": "users",
            "columns": [
                {"name": "id", "type": "INTEGER", "primary": True, "autoIncrement": True},
                {"name": "name", "type": "VARCHAR(50)", "notNull": True},
            ],
        },
    )
    assert r.status_code == 200, r.text


def test_status_before_connect(client):
    assert client.get("/api/db/status").json() == {"connected": False}


def test_routes_require_connection(client):
    r = client.get("/api/db/tables")
    assert r.status_code == 400
    assert r.json() == {"success": False, "message": "Database not connected"}
    assert client.post("/api/db/query", json={"sql": "SELECT 1"}).status_code == 400


def test_connect_validation_and_failure(client, tmp_path):
    r = client.post("/api/db/connect", json={"host": "localhost", "user": "root"})
    assert r.status_code == 400
    assert r.json()["message"] == "Missing required database connection parameters"
    bad = f"sqlite:///{tmp_path / 'nope' / 'x.db'}"
    r = client.post("/api/db/connect", json={"url": bad})
    assert r.status_code == 500
    assert r.json()["message"].startswith("Database connection failed:")


def test_connect_and_status(client):
    _connect(client)
    body = client.get("/api/db/status").json()
    assert body["connected"] is True
    assert body["info"]["isConnected"] is True
    assert client.get("/healthz").json()["db_connected"] is True


def test_table_and_row_routes(client):
    _connect(client)
    _create_users(client)
    assert client.get("/api/db/tables").json() == {"success": True, "tables": ["users"]}
    schema = client.get("/api/db/table/users/schema").json()["schema"]
    assert [c["Field"] for c in schema] == ["id", "name"]

    r = client.post("/api/db/table/users/row", json={"data": {"name": "Ada"}})
    assert r.json() == {"success": True, "result": {"affectedRows": 1, "insertId": 1}}
    client.post("/api/db/table/users/row", json={"data": {"name": "Bob"}})

    data = client.get("/api/db/table/users/data?limit=1&offset=1").json()["data"]
    assert data == [{"id": 2, "name": "Bob"}]
    assert len(client.get("/api/db/table/users/data?limit=abc").json()["data"]) == 2

    r = client.put("/api/db/table/users/row", json={"data": {"name": "Ada L."}, "where": {"id": 1}})
    assert r.json()["result"]["affectedRows"] == 1
    r = client.request("DELETE", "/api/db/table/users/row", json={"where": {"id": 2}})
    assert r.json()["result"]["affectedRows"] == 1
    assert client.get("/api/db/table/users/data").json()["data"] == [{"id": 1, "name": "Ada L."}]

    assert client.delete("/api/db/table/users").json()["success"] is True
    assert client.get("/api/db/tables").json()["tables"] == []


def test_row_route_validation(client):
    _connect(client)
    _create_users(client)
    assert client.post("/api/db/table/users/row", json={}).json()["message"] == "Row data is required"
    r = client.put("/api/db/table/users/row", json={"data": {"name": "x"}})
    assert r.status_code == 400
    assert r.json()["message"] == "Row data and where condition are required"
    r = client.request("DELETE", "/api/db/table/users/row", json={})
    assert r.json()["message"] == "Where condition is required"
    r = client.post("/api/db/table", json={"tableName": "t"})
    assert r.json()["message"] == "Table name and columns are required"
    r = client.get("/api/db/table/%21%21/data")
    assert r.status_code == 400


def test_query_route(client):
    _connect(client)
    _create_users(client)
    assert client.post("/api/db/query", json={}).json()["message"] == "SQL query is required"
    r = client.post("/api/db/query", json={"sql": "INSERT INTO users (name) VALUES ('Zed')"})
    res = r.json()["result"]
    assert res["affectedRows"] == 1
    assert res["message"].startswith("Inserted 1 row(s)")
    res = client.post("/api/db/query", json={"sql": "SELECT name FROM users"}).json()["result"]
    assert res["rows"] == [{"name": "Zed"}]
    assert res["fields"][0]["name"] == "name"
    r = client.post("/api/db/query", json={"sql": "SELECT * FROM nope"})
    assert r.status_code == 500
    assert r.json()["success"] is False


def test_column_routes(client):
    _connect(client)
    _create_users(client)
    r = client.post("/api/db/table/users/column", json={"columnDefinition": {"name": "age", "type": "INTEGER", "defaultValue": 0}})
    assert r.status_code == 200, r.text
    cols = client.get("/api/db/table/users/columns").json()["columns"]
    assert [c["Field"] for c in cols] == ["id", "name", "age"]
    assert client.delete("/api/db/table/users/column/age").json()["success"] is True

    r = client.post("/api/db/table/users/column", json={"columnDefinition": {"name": "x"}})
    assert r.json()["message"] == "Column name and type are required"
    r = client.put("/api/db/table/users/column/name", json={"columnDefinition": {}})
    assert r.json()["message"] == "Column type is required"
    r = client.patch("/api/db/table/users/column/name", json={"columnDefinition": {"type": "TEXT"}})
    assert r.json()["message"] == "New column name and type are required"
