import pytest
from cellblob_core import BlobClosedError, BlobIOError, BlobNotWritableError, CellBlobError
from cellblob_daemon.adapters import SQLiteBlobConnection
from cellblob_daemon.config import Settings
from cellblob_daemon.http import create_app
from fastapi.testclient import TestClient

HEADERS = {"Authorization": "Bearer secret-token"}


def make_blob(size: int) -> bytes:
    return bytes(i % 256 for i in range(size))


@pytest.fixture
def settings(tmp_path) -> Settings:
    settings = Settings(
        app_data_dir=str(tmp_path / "data"),
        daemon_state_dir=str(tmp_path / "state"),
        auth_token="secret-token",
        blob_columns=["blobs.data"],
        chunk_size=64,
        max_upload_bytes=4096,
    )
    settings.ensure_dirs()
    with SQLiteBlobConnection.connect(settings.sqlite_path) as conn:
        conn.execute("CREATE TABLE blobs (id INTEGER PRIMARY KEY, data BLOB, n INTEGER)")
        conn.execute("CREATE TABLE hidden (id INTEGER PRIMARY KEY, data BLOB)")
        conn.execute("INSERT INTO blobs (id, data) VALUES (?, ?)", (1, make_blob(1000)))
        conn.execute("INSERT INTO blobs (id, data) VALUES (2, NULL)")
        conn.commit()
    return settings


@pytest.fixture
def client(settings: Settings) -> TestClient:
    return TestClient(create_app(settings=settings, auth_token="secret-token"))


def test_api_requires_token(client: TestClient) -> None:
    assert client.get("/healthz").status_code == 200
    assert client.get("/api/v1/capabilities").status_code == 401
    assert client.get("/api/v1/capabilities", headers={"Authorization": "Bearer wrong"}).status_code == 401

    ok = client.get("/api/v1/capabilities", headers=HEADERS)
    assert ok.status_code == 200
    assert ok.json() == {"blob_columns": ["blobs.data"], "chunk_size": 64, "max_upload_bytes": 4096}


def test_blob_info(client: TestClient) -> None:
    response = client.get("/api/v1/blobs/blobs/data/1/info", headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"table": "blobs", "column": "data", "row_id": 1, "size": 1000}


def test_download_whole_blob(client: TestClient) -> None:
    response = client.get("/api/v1/blobs/blobs/data/1", headers=HEADERS)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/octet-stream"
    assert response.headers["content-length"] == "1000"
    assert response.content == make_blob(1000)


def test_download_range(client: TestClient) -> None:
    response = client.get("/api/v1/blobs/blobs/data/1", params={"offset": 100, "length": 150}, headers=HEADERS)

    assert response.status_code == 200
    assert response.content == make_blob(1000)[100:250]


def test_download_range_past_end(client: TestClient) -> None:
    response = client.get("/api/v1/blobs/blobs/data/1", params={"offset": 900, "length": 101}, headers=HEADERS)

    assert response.status_code == 416


def test_missing_and_null_cells_are_404(client: TestClient) -> None:
    assert client.get("/api/v1/blobs/blobs/data/999", headers=HEADERS).status_code == 404
    assert client.get("/api/v1/blobs/blobs/data/2/info", headers=HEADERS).status_code == 404


def test_unexposed_columns_are_404(client: TestClient) -> None:
    response = client.get("/api/v1/blobs/hidden/data/1", headers=HEADERS)

    assert response.status_code == 404
    assert response.json()["detail"] == "Blob column not found"


def test_schema_errors_are_400(settings: Settings) -> None:
    settings.blob_columns = ["blobs.data", "blobs.n", "nowhere.data"]
    client = TestClient(create_app(settings=settings, auth_token="secret-token"))
    with SQLiteBlobConnection.connect(settings.sqlite_path) as conn:
        conn.execute("UPDATE blobs SET n = 7 WHERE id = 1")
        conn.commit()

    wrong_type = client.get("/api/v1/blobs/blobs/n/1/info", headers=HEADERS)
    no_table = client.get("/api/v1/blobs/nowhere/data/1/info", headers=HEADERS)

    assert wrong_type.status_code == 400
    assert wrong_type.json()["engine_error"] == "SQLITE_ERROR"
    assert no_table.status_code == 400


def test_upload_then_download(client: TestClient) -> None:
    payload = make_blob(3000)[::-1]

    put = client.put("/api/v1/blobs/blobs/data/5", content=payload, headers=HEADERS)
    assert put.status_code == 200
    assert put.json()["size"] == 3000

    response = client.get("/api/v1/blobs/blobs/data/5", headers=HEADERS)
    assert response.content == payload


def test_upload_replaces_existing_blob(client: TestClient) -> None:
    put = client.put("/api/v1/blobs/blobs/data/1", content=b"short", headers=HEADERS)
    assert put.status_code == 200

    info = client.get("/api/v1/blobs/blobs/data/1/info", headers=HEADERS)
    assert info.json()["size"] == 5
    assert client.get("/api/v1/blobs/blobs/data/1", headers=HEADERS).content == b"short"


def test_upload_too_large(client: TestClient) -> None:
    response = client.put("/api/v1/blobs/blobs/data/6", content=b"x" * 5000, headers=HEADERS)

    assert response.status_code == 413
    assert client.get("/api/v1/blobs/blobs/data/6/info", headers=HEADERS).status_code == 404


def test_upload_without_content_length(client: TestClient) -> None:
    response = client.put("/api/v1/blobs/blobs/data/6", content=iter([b"abc"]), headers=HEADERS)

    assert response.status_code == 411
    assert client.get("/api/v1/blobs/blobs/data/6/info", headers=HEADERS).status_code == 404


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (BlobNotWritableError("attempt to write a readonly database", errorname="SQLITE_READONLY"), 409),
        (BlobClosedError("connection is closed"), 409),
        (BlobIOError("disk I/O error", errorname="SQLITE_IOERR"), 500),
    ],
)
def test_blob_errors_map_to_status_codes(
    settings: Settings, caplog, error: CellBlobError, status_code: int
) -> None:
    app = create_app(settings=settings, auth_token="secret-token")

    @app.get("/failing")
    def failing() -> None:
        raise error

    response = TestClient(app).get("/failing")

    assert response.status_code == status_code
    assert response.json() == {"detail": str(error), "engine_error": error.errorname}
    assert ("failed" in caplog.text) is (status_code >= 500)


def test_settings_reject_malformed_blob_columns() -> None:
    with pytest.raises(ValueError):
        Settings(blob_columns=["no_dot"])
