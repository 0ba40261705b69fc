import os
from datetime import datetime, timedelta, timezone

import mongomock
from pymongo.errors import PyMongoError

import projects
from projects import SYNCED, check_slug, generate_unique_slug, reconcile_pairs, slugify


def create(client, headers, locale="tr", **fields):
    response = client.post(f"/api/admin/projects/{locale}", json=fields, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_slugify_maps_turkish_letters():
    assert slugify("Çini Vazo Şölen") == "cini-vazo-solen"
    assert slugify("  Raku -- Pişirim!  ") == "raku-pisirim"


def test_create_tr_project_creates_hidden_en_sibling(client, db, auth_headers):
    created = create(client, auth_headers, id="Çini Vazo", title="Çini Vazo", images=["/images/projects/a.png"])

    assert created["id"] == "cini-vazo"
    assert created["status"] is True
    assert created["pairingStatus"] == SYNCED
    assert created["seo"]["metaTitle"] == "Çini Vazo"
    assert created["seo"]["ogImage"] == "/logo.webp"

    sibling = db["projects"].find_one({"locale": "en", "originalId": created["originalId"]})
    assert sibling is not None
    assert sibling["id"] == "en-" + created["originalId"][:8]
    assert sibling["status"] is False
    assert sibling["images"] == ["/images/projects/a.png"]
    assert sibling["pairingStatus"] == SYNCED


def test_create_tr_project_requires_slug_and_title(client, auth_headers):
    assert client.post("/api/admin/projects/tr", json={"title": "No slug"}, headers=auth_headers).status_code == 400
    assert client.post("/api/admin/projects/tr", json={"id": "no-title"}, headers=auth_headers).status_code == 400


def test_create_en_project_without_slug_gets_placeholder(client, db, auth_headers):
    created = create(client, auth_headers, locale="en", title="Draft")
    assert created["id"].startswith("en-project-")
    assert db["projects"].count_documents({"locale": "tr"}) == 0


def test_new_projects_are_appended_to_the_order(client, auth_headers):
    orders = [create(client, auth_headers, id=slug, title=slug)["order"] for slug in ("a", "b", "c")]
    assert orders == [0, 1, 2]


def test_duplicate_slug_is_rejected_with_suggestion(client, auth_headers):
    create(client, auth_headers, id="foo", title="Foo")
    first = client.post("/api/admin/projects/tr", json={"id": "foo", "title": "Foo"}, headers=auth_headers)
    assert first.status_code == 409
    assert first.json()["detail"]["suggestedSlug"] == "foo1"

    create(client, auth_headers, id="foo1", title="Foo")
    second = client.post("/api/admin/projects/tr", json={"id": "foo", "title": "Foo"}, headers=auth_headers)
    assert second.json()["detail"]["suggestedSlug"] == "foo2"


def test_slug_check(client, db, auth_headers):
    created = create(client, auth_headers, id="vase", title="Vase")

    taken = client.get("/api/admin/projects/slug-check", params={"slug": "vase", "locale": "tr"}, headers=auth_headers)
    assert taken.json() == {"isAvailable": False, "slug": "vase", "suggestedSlug": "vase1"}

    own = check_slug(db, "vase", "tr", original_id=created["originalId"])
    assert own["isAvailable"] is True
    assert check_slug(db, "vase", "tr", current_id="vase")["isAvailable"] is True
    assert generate_unique_slug(db, "bowl", "tr") == "bowl"


def test_reorder_changes_listing_order(client, auth_headers):
    for slug in ("a", "b", "c"):
        create(client, auth_headers, id=slug, title=slug.upper())

    response = client.post(
        "/api/admin/projects/order",
        json={"locale": "tr", "orders": [{"id": "a", "order": 2}, {"id": "b", "order": 0}, {"id": "c", "order": 1}]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["updated"] == 3

    listed = client.get("/api/projects/tr").json()["list"]
    assert [p["id"] for p in listed] == ["b", "c", "a"]


def test_reorder_reports_each_item(client, auth_headers, revalidator):
    create(client, auth_headers, id="a", title="A")
    response = client.post(
        "/api/admin/projects/order",
        json={"locale": "tr", "orders": [{"id": "a", "order": 5}, {"id": "ghost", "order": 1}]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    statuses = {r["id"]: r["status"] for r in response.json()["results"]}
    assert statuses == {"a": "updated", "ghost": "missing"}
    assert "projects-tr" in revalidator.tags


def test_reorder_with_no_matching_project_is_404(client, auth_headers):
    response = client.post(
        "/api/admin/projects/order",
        json={"locale": "tr", "orders": [{"id": "ghost", "order": 1}]},
        headers=auth_headers,
    )
    assert response.status_code == 404


def test_reorder_rejects_unknown_locale(client, auth_headers):
    response = client.post("/api/admin/projects/order", json={"locale": "de", "orders": []}, headers=auth_headers)
    assert response.status_code == 400


def test_listing_backfills_missing_order(client, db, auth_headers):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i, slug in enumerate(("old", "mid", "new")):
        db["projects"].insert_one({
            "id": slug,
            "locale": "tr",
            "originalId": f"oid-{slug}",
            "title": slug,
            "status": True,
            "createdAt": base + timedelta(days=i),
        })

    listed = client.get("/api/admin/projects/tr", headers=auth_headers).json()["list"]
    assert [p["id"] for p in listed] == ["new", "mid", "old"]
    assert [p["order"] for p in listed] == [0, 1, 2]
    assert db["projects"].find_one({"id": "old"})["order"] == 2


def test_listing_includes_translation_strings(client, db, auth_headers):
    db["projecttranslations"].insert_one({"locale": "en", "title": "Projects", "viewAll": "View all"})
    body = client.get("/api/projects/en").json()
    assert body["title"] == "Projects"
    assert body["list"] == []


def test_public_routes_hide_unpublished(client, db, auth_headers):
    created = create(client, auth_headers, id="vase", title="Vase")
    sibling = db["projects"].find_one({"locale": "en", "originalId": created["originalId"]})

    assert client.get("/api/projects/en").json()["list"] == []
    assert client.get(f"/api/projects/en/{sibling['id']}").status_code == 404
    assert client.get("/api/projects/tr/vase").status_code == 200


def test_lookup_falls_back_to_sibling_slug(client, db, auth_headers):
    created = create(client, auth_headers, id="vase", title="Vase")
    response = client.get("/api/admin/projects/en/vase", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["locale"] == "en"
    assert response.json()["originalId"] == created["originalId"]

    by_original = client.get(f"/api/admin/projects/en/{created['originalId']}", headers=auth_headers)
    assert by_original.json()["id"] == response.json()["id"]


def test_image_change_propagates_to_sibling(client, db, auth_headers, revalidator):
    created = create(client, auth_headers, id="vase", title="Vase", images=["/images/projects/a.png"])
    images = ["/images/projects/a.png", "/images/projects/b.png"]

    response = client.put(
        f"/api/admin/projects/tr/by-original-id/{created['originalId']}",
        json={"images": images, "title": "Vazo"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Vazo"

    sibling = db["projects"].find_one({"locale": "en", "originalId": created["originalId"]})
    assert sibling["images"] == images
    assert sibling["title"] == ""
    assert {p["pairingStatus"] for p in db["projects"].find({"originalId": created["originalId"]})} == {SYNCED}
    assert "/tr/projects/vase" in revalidator.paths
    assert "/en/projects" in revalidator.paths


def test_image_change_without_sibling_marks_pair_partial(client, db, auth_headers):
    created = create(client, auth_headers, id="vase", title="Vase")
    db["projects"].delete_one({"locale": "en", "originalId": created["originalId"]})

    client.put(
        "/api/admin/projects/tr/vase",
        json={"images": ["/images/projects/x.png"]},
        headers=auth_headers,
    )
    assert db["projects"].find_one({"locale": "tr", "id": "vase"})["pairingStatus"] == "partial"


def test_update_to_taken_slug_conflicts(client, auth_headers):
    create(client, auth_headers, id="foo", title="Foo")
    bar = create(client, auth_headers, id="bar", title="Bar")
    response = client.put(
        f"/api/admin/projects/tr/by-original-id/{bar['originalId']}",
        json={"id": "foo"},
        headers=auth_headers,
    )
    assert response.status_code == 409
    assert response.json()["detail"]["suggestedSlug"] == "foo1"


def test_update_unknown_project_is_404(client, auth_headers):
    response = client.put("/api/admin/projects/tr/by-original-id/nope", json={"title": "x"}, headers=auth_headers)
    assert response.status_code == 404


def test_delete_removes_pair_even_when_an_image_is_missing(client, db, auth_headers, upload_root):
    image_dir = os.path.join(upload_root, "images", "projects")
    os.makedirs(image_dir)
    with open(os.path.join(image_dir, "a.png"), "wb") as f:
        f.write(b"png")

    create(client, auth_headers, id="vase", title="Vase", images=["/images/projects/a.png", "/images/projects/gone.png"])

    response = client.delete("/api/admin/projects/tr/vase", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["deletedImages"] == ["/images/projects/a.png"]
    assert body["missingImages"] == ["/images/projects/gone.png"]
    assert db["projects"].count_documents({}) == 0
    assert not os.path.exists(os.path.join(image_dir, "a.png"))


def test_delete_unknown_project_is_404(client, auth_headers):
    assert client.delete("/api/admin/projects/tr/nope", headers=auth_headers).status_code == 404


def test_reconcile_creates_missing_siblings(client, db, auth_headers):
    db["projects"].insert_one({
        "id": "orphan",
        "locale": "tr",
        "originalId": "0123456789abcdef",
        "title": "Orphan",
        "images": ["/images/projects/o.png"],
        "order": 0,
        "status": True,
        "pairingStatus": "failed",
    })

    response = client.post("/api/admin/projects/reconcile", headers=auth_headers)
    assert response.status_code == 200
    summary = response.json()
    assert summary["siblingsCreated"] == 1
    assert summary["unresolved"] == []

    sibling = db["projects"].find_one({"locale": "en", "originalId": "0123456789abcdef"})
    assert sibling["id"] == "en-01234567"
    assert sibling["images"] == ["/images/projects/o.png"]
    assert db["projects"].find_one({"id": "orphan"})["pairingStatus"] == SYNCED


def test_reconcile_reports_en_without_tr(client, db, auth_headers):
    db["projects"].insert_one({"id": "lonely", "locale": "en", "originalId": "x", "pairingStatus": "partial"})
    summary = client.post("/api/admin/projects/reconcile", headers=auth_headers).json()
    assert summary["unresolved"] == ["lonely"]


def test_admin_project_routes_need_token(client):
    assert client.get("/api/admin/projects/tr").status_code == 401
    assert client.post("/api/admin/projects/tr", json={"id": "a", "title": "A"}).status_code == 401


def test_slug_check_normalizes_like_create(client, auth_headers):
    create(client, auth_headers, id="foo", title="Foo")

    checked = client.get("/api/admin/projects/slug-check", params={"slug": "Foo", "locale": "tr"}, headers=auth_headers)
    assert checked.json() == {"isAvailable": False, "slug": "foo", "suggestedSlug": "foo1"}

    free = client.get("/api/admin/projects/slug-check", params={"slug": "Çini Vazo", "locale": "tr"}, headers=auth_headers)
    assert free.json() == {"isAvailable": True, "slug": "cini-vazo"}

    empty = client.get("/api/admin/projects/slug-check", params={"slug": "!!!", "locale": "tr"}, headers=auth_headers)
    assert empty.status_code == 400


def test_backfill_renumbers_mixed_legacy_and_ordered_projects(client, db, auth_headers):
    db["projects"].insert_many([
        {"id": "a", "locale": "tr", "originalId": "oid-a", "order": 0, "status": True},
        {"id": "b", "locale": "tr", "originalId": "oid-b", "order": 1, "status": True},
        {"id": "legacy", "locale": "tr", "originalId": "oid-legacy", "status": True},
    ])

    listed = client.get("/api/admin/projects/tr", headers=auth_headers).json()["list"]
    assert [p["order"] for p in listed] == [0, 1, 2]

    stored = {p["id"]: p["order"] for p in db["projects"].find({"locale": "tr"})}
    assert sorted(stored.values()) == [0, 1, 2]
    assert stored == {p["id"]: p["order"] for p in listed}


def test_backfill_write_failure_does_not_fail_listing(client, db, auth_headers, monkeypatch):
    db["projects"].insert_one({"id": "legacy", "locale": "tr", "originalId": "oid-legacy", "status": True})

    def broken_update(self, *args, **kwargs):
        raise PyMongoError("write failed")

    monkeypatch.setattr(mongomock.Collection, "update_one", broken_update)
    response = client.get("/api/admin/projects/tr", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["list"][0]["order"] == 0
    assert "order" not in db["projects"].find_one({"id": "legacy"})


def test_sibling_failure_keeps_tr_project_marked_failed(client, db, auth_headers, monkeypatch):
    monkeypatch.setattr(projects, "generate_original_id", lambda: "deadbeef-0000-4000-8000-000000000000")
    db["projects"].insert_one({"id": "en-deadbeef", "locale": "en", "originalId": "someone-else", "pairingStatus": SYNCED})

    response = client.post("/api/admin/projects/tr", json={"id": "vase", "title": "Vase"}, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["pairingStatus"] == "failed"
    assert db["projects"].find_one({"locale": "en", "originalId": "deadbeef-0000-4000-8000-000000000000"}) is None

    summary = reconcile_pairs(db)
    assert summary["unresolved"] == ["vase"]
