import os

from uploads import MAX_SIZE_BYTES, resolve_image_path

PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 64


def upload(client, headers, content=PNG, mime="image/png", upload_type="project", name="Vazo 1.png"):
    return client.post(
        "/api/admin/upload",
        files={"file": (name, content, mime)},
        data={"type": upload_type},
        headers=headers,
    )


def test_project_image_upload(client, auth_headers, upload_root):
    response = upload(client, auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["url"].startswith("/images/projects/project_Vazo_1_")
    assert body["url"].endswith(".png")
    assert os.path.exists(os.path.join(upload_root, "images", "projects", body["fileName"]))


def test_site_image_upload_goes_to_site_dir(client, auth_headers):
    response = upload(client, auth_headers, upload_type="logo")
    assert response.json()["url"].startswith("/images/site/logo_")


def test_rejects_non_image(client, auth_headers):
    assert upload(client, auth_headers, mime="application/pdf").status_code == 400


def test_rejects_unknown_upload_type(client, auth_headers):
    assert upload(client, auth_headers, upload_type="avatar").status_code == 400


def test_rejects_oversized_file(client, auth_headers, upload_root):
    response = upload(client, auth_headers, content=b"0" * (MAX_SIZE_BYTES + 1))
    assert response.status_code == 413
    assert os.listdir(os.path.join(upload_root, "images", "projects")) == []


def test_upload_requires_token(client):
    assert upload(client, {}).status_code == 401


def test_delete_image(client, auth_headers, upload_root):
    stored = upload(client, auth_headers).json()
    response = client.post("/api/admin/deleteImage", json={"fileName": stored["fileName"]}, headers=auth_headers)
    assert response.status_code == 200
    assert not os.path.exists(os.path.join(upload_root, "images", "projects", stored["fileName"]))

    again = client.post("/api/admin/deleteImage", json={"fileName": stored["fileName"]}, headers=auth_headers)
    assert again.status_code == 404


def test_delete_image_refuses_traversal(client, auth_headers):
    for name in ("../secret.txt", "a/b.png", ""):
        response = client.post("/api/admin/deleteImage", json={"fileName": name}, headers=auth_headers)
        assert response.status_code == 400


def test_resolve_image_path(upload_root):
    assert resolve_image_path("/images/projects/a.png", upload_root) == os.path.realpath(
        os.path.join(upload_root, "images", "projects", "a.png")
    )
    assert resolve_image_path("/images/projects/a.png?v=2", upload_root).endswith("a.png")
    assert resolve_image_path("/images/../../etc/passwd", upload_root) is None
    assert resolve_image_path("https://cdn.example.com/a.png", upload_root) is None
    assert resolve_image_path("", upload_root) is None
