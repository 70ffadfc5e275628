import io

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def upload(client, headers, data=PNG_BYTES, filename="my bead.png", mimetype="image/png"):
    return client.post(
        "/api/upload",
        data={"file": (io.BytesIO(data), filename, mimetype)},
        content_type="multipart/form-data",
        headers=headers,
    )


def test_upload_and_serve(client, editor):
    resp = upload(client, editor[1])

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["error"] is False
    assert body["url"].startswith("/uploads/")
    assert body["url"].endswith("-my-bead.png")

    served = client.get(body["url"])
    assert served.status_code == 200
    assert served.data == PNG_BYTES


def test_upload_requires_token(client):
    assert upload(client, {}).status_code == 401


def test_upload_without_file(client, editor):
    resp = client.post("/api/upload", data={}, content_type="multipart/form-data", headers=editor[1])
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "No file uploaded"


def test_upload_rejects_other_types(client, editor):
    resp = upload(client, editor[1], b"hello", "notes.txt", "text/plain")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid file type"


def test_upload_size_limit(app, client, editor):
    app.config["MAX_UPLOAD_BYTES"] = 1024 * 1024
    resp = upload(client, editor[1], b"\x00" * (1024 * 1024 + 1))
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "File size exceeds 1MB"
