"""
Portfolio projects.

Every project exists once per locale. The TR and EN documents describing the
same work share an opaque `originalId`; `id` is the per-locale URL slug.
Writes that touch both documents of a pair (sibling creation, gallery
propagation) are separate steps whose outcome is recorded in
`pairingStatus` so a half-synced pair can be repaired by `reconcile_pairs`.
"""

import logging
import re
import time
import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from auth import AdminIdentity, get_current_admin
from database import get_db, now, serialize
from revalidation import Revalidator, get_revalidator, project_targets
from schemas import OrderItem, OrderRequest, ProjectIn, other_locale, require_locale
from site_config import PUBLIC_CACHE_CONTROL, default_og_image
from uploads import delete_image_files, get_upload_root

logger = logging.getLogger(__name__)

SYNCED = "synced"
PARTIAL = "partial"
FAILED = "failed"

LIST_SORT = [("order", ASCENDING), ("createdAt", DESCENDING)]

_TURKISH_MAP = str.maketrans("ıİğĞüÜşŞöÖçÇ", "iIgGuUsSoOcC")

router = APIRouter()


def projects_collection(db: Database):
    return db["projects"]


def slugify(text: str) -> str:
    text = (text or "").translate(_TURKISH_MAP).lower().strip()
    text = re.sub(r"[^a-z0-9\s-]", "", text)
    text = re.sub(r"[\s-]+", "-", text)
    return text.strip("-")


def generate_original_id() -> str:
    return str(uuid.uuid4())


def generate_unique_slug(db: Database, base_slug: str, locale: str, exclude_original_id: Optional[str] = None) -> str:
    """Append 1, 2, ... to base_slug until no other project in the locale uses it."""
    slug = base_slug
    counter = 1
    while True:
        query = {"locale": locale, "id": slug}
        if exclude_original_id:
            query["originalId"] = {"$ne": exclude_original_id}
        if projects_collection(db).find_one(query, {"_id": 1}) is None:
            return slug
        slug = f"{base_slug}{counter}"
        counter += 1


def check_slug(db: Database, slug: str, locale: str, original_id: Optional[str] = None, current_id: Optional[str] = None) -> dict:
    """Availability of a slug as create/update would store it."""
    slug = slugify(slug)
    if not slug:
        raise HTTPException(status_code=400, detail="slug must contain letters or digits")
    if current_id and current_id == slug:
        # a project keeping its own slug
        return {"isAvailable": True, "slug": slug}
    query = {"locale": locale, "id": slug}
    if original_id:
        query["originalId"] = {"$ne": original_id}
    if projects_collection(db).find_one(query, {"_id": 1}) is None:
        return {"isAvailable": True, "slug": slug}
    return {"isAvailable": False, "slug": slug, "suggestedSlug": generate_unique_slug(db, slug, locale, original_id)}


def _seo_with_defaults(seo: Optional[dict], title: str, og_image: str) -> dict:
    seo = dict(seo or {})
    return {
        "metaTitle": seo.get("metaTitle") or title or "",
        "metaDescription": seo.get("metaDescription") or "",
        "metaKeywords": seo.get("metaKeywords") or "",
        "ogTitle": seo.get("ogTitle") or title or "",
        "ogDescription": seo.get("ogDescription") or "",
        "ogImage": seo.get("ogImage") or og_image,
    }


def _next_order(db: Database, locale: str) -> int:
    return projects_collection(db).count_documents({"locale": locale})


def _slug_conflict(db: Database, slug: str, locale: str, original_id: Optional[str] = None) -> HTTPException:
    suggestion = generate_unique_slug(db, slug, locale, original_id)
    return HTTPException(
        status_code=409,
        detail={"message": f"Slug '{slug}' is already used in {locale}", "suggestedSlug": suggestion},
    )


def _set_pairing_status(db: Database, original_id: str, status: str, locale: Optional[str] = None) -> None:
    query = {"originalId": original_id}
    if locale:
        query["locale"] = locale
    projects_collection(db).update_many(query, {"$set": {"pairingStatus": status}})


# ====
# Read
# ====

def list_projects(db: Database, locale: str, published_only: bool = False) -> dict:
    """Projects of one locale joined with that locale's listing strings."""
    query = {"locale": locale}
    if published_only:
        query["status"] = True
    items = list(projects_collection(db).find(query).sort(LIST_SORT))

    if not published_only:
        backfill_order(db, items)

    translation = db["projecttranslations"].find_one({"locale": locale})
    if translation is None:
        logger.warning("No project translations stored for %s", locale)
        translation = {"locale": locale}
    response = serialize(translation)
    response["list"] = [serialize(p) for p in items]
    return response


def backfill_order(db: Database, items: List[dict]) -> None:
    """
    Renumber the list just read when any legacy project lacks an order.

    Documents without an order sort first, so filling only the gaps would
    collide with existing ranks. Every listed project gets its position.
    """
    if all(p.get("order") is not None for p in items):
        return
    logger.info("Backfilling order for %d projects", len(items))
    for index, project in enumerate(items):
        if project.get("order") == index:
            continue
        project["order"] = index
        try:
            projects_collection(db).update_one({"_id": project["_id"]}, {"$set": {"order": index}})
        except PyMongoError as e:
            logger.warning("Order backfill failed for %s: %s", project.get("id"), e)


def get_by_original_id(db: Database, locale: str, original_id: str) -> dict:
    project = projects_collection(db).find_one({"locale": locale, "originalId": original_id})
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def find_project(db: Database, locale: str, project_id: str, extra: Optional[dict] = None) -> Optional[dict]:
    """Look a project up by slug, then by originalId, then through its sibling in the other locale."""
    base = dict(extra or {})
    coll = projects_collection(db)
    project = coll.find_one({**base, "locale": locale, "id": project_id})
    if project is None:
        project = coll.find_one({**base, "locale": locale, "originalId": project_id})
    if project is None:
        sibling = coll.find_one({
            "locale": other_locale(locale),
            "$or": [{"id": project_id}, {"originalId": project_id}],
        })
        if sibling is not None:
            project = coll.find_one({**base, "locale": locale, "originalId": sibling["originalId"]})
    return project


# ======
# Create
# ======

def create_project(db: Database, locale: str, data: ProjectIn) -> dict:
    payload = data.model_dump(exclude_unset=True)
    slug = slugify(payload.get("id") or "")
    title = (payload.get("title") or "").strip()

    if locale == "tr":
        if not slug:
            raise HTTPException(status_code=400, detail="Turkish projects need a non-empty id (slug)")
        if not title:
            raise HTTPException(status_code=400, detail="Turkish projects need a non-empty title")
    elif not slug:
        # EN slugs are not user facing until the project is translated
        slug = f"en-project-{int(time.time() * 1000)}"

    if projects_collection(db).find_one({"locale": locale, "id": slug}, {"_id": 1}) is not None:
        raise _slug_conflict(db, slug, locale)

    og_image = default_og_image(db)
    original_id = generate_original_id()
    stamp = now()
    document = {
        **payload,
        "id": slug,
        "locale": locale,
        "originalId": original_id,
        "title": payload.get("title") or "",
        "description": payload.get("description") or "",
        "images": payload.get("images") or [],
        "technologies": payload.get("technologies") or [],
        "order": payload["order"] if payload.get("order") is not None else _next_order(db, locale),
        "status": payload["status"] if payload.get("status") is not None else locale == "tr",
        "seo": _seo_with_defaults(payload.get("seo"), title, og_image),
        "pairingStatus": PARTIAL,
        "createdAt": stamp,
        "updatedAt": stamp,
    }

    try:
        projects_collection(db).insert_one(document)
    except DuplicateKeyError:
        raise _slug_conflict(db, slug, locale)
    logger.info("Created %s project %s (originalId=%s)", locale, slug, original_id)

    if locale == "tr":
        create_sibling(db, document, og_image)

    return serialize(projects_collection(db).find_one({"_id": document["_id"]}))


def create_sibling(db: Database, tr_project: dict, og_image: Optional[str] = None) -> bool:
    """Create the hidden EN twin of a TR project. Failures are recorded, not raised."""
    original_id = tr_project["originalId"]
    stamp = now()
    sibling = {
        "id": f"en-{original_id[:8]}",
        "locale": "en",
        "originalId": original_id,
        "title": "",
        "description": "",
        "technologies": [],
        "images": list(tr_project.get("images") or []),
        "order": _next_order(db, "en"),
        "status": False,
        "seo": _seo_with_defaults(None, "", og_image or default_og_image(db)),
        "pairingStatus": SYNCED,
        "createdAt": stamp,
        "updatedAt": stamp,
    }
    try:
        projects_collection(db).insert_one(sibling)
    except PyMongoError as e:
        logger.error("Could not create EN sibling for %s: %s", original_id, e)
        _set_pairing_status(db, original_id, FAILED, locale="tr")
        return False
    _set_pairing_status(db, original_id, SYNCED)
    logger.info("Created EN sibling %s for %s", sibling["id"], tr_project.get("id"))
    return True


# ======
# Update
# ======

def update_project(db: Database, locale: str, original_id: str, data: ProjectIn) -> dict:
    existing = get_by_original_id(db, locale, original_id)
    payload = data.model_dump(exclude_unset=True)

    slug = slugify(payload.get("id") or "") or existing["id"]
    if slug != existing["id"] and projects_collection(db).find_one(
        {"locale": locale, "id": slug, "originalId": {"$ne": original_id}}, {"_id": 1}
    ) is not None:
        raise _slug_conflict(db, slug, locale, original_id)

    title = payload.get("title", existing.get("title")) or ""
    if "seo" in payload:
        payload["seo"] = _seo_with_defaults(payload["seo"], title, default_og_image(db))
    elif not existing.get("seo"):
        payload["seo"] = _seo_with_defaults(None, title, default_og_image(db))

    payload.update({
        "id": slug,
        "locale": locale,
        "originalId": original_id,
        "updatedAt": now(),
    })

    try:
        projects_collection(db).update_one({"_id": existing["_id"]}, {"$set": payload})
    except DuplicateKeyError:
        raise _slug_conflict(db, slug, locale, original_id)

    images = payload.get("images")
    if images and images != existing.get("images"):
        propagate_images(db, locale, original_id, images)

    # read back what was actually persisted
    updated = projects_collection(db).find_one({"_id": existing["_id"]})
    if updated is None:
        raise HTTPException(status_code=500, detail="Project could not be updated")
    logger.info("Updated %s project %s", locale, updated["id"])
    return serialize(updated)


def propagate_images(db: Database, locale: str, original_id: str, images: List[str]) -> bool:
    """Mirror a gallery change onto the other locale's document of the pair."""
    target = other_locale(locale)
    try:
        result = projects_collection(db).update_one(
            {"locale": target, "originalId": original_id},
            {"$set": {"images": list(images), "updatedAt": now()}},
        )
    except PyMongoError as e:
        logger.error("Image propagation to %s failed for %s: %s", target, original_id, e)
        _set_pairing_status(db, original_id, PARTIAL, locale=locale)
        return False
    if result.matched_count == 0:
        logger.warning("No %s sibling to propagate images to (originalId=%s)", target, original_id)
        _set_pairing_status(db, original_id, PARTIAL, locale=locale)
        return False
    _set_pairing_status(db, original_id, SYNCED)
    return True


# =======
# Reorder
# =======

def reorder_projects(db: Database, locale: str, orders: List[OrderItem]) -> List[Dict]:
    """Apply each order change on its own and report the outcome per item."""
    results = []
    for item in orders:
        entry = {"id": item.id, "order": item.order}
        try:
            result = projects_collection(db).update_one(
                {"locale": locale, "id": item.id},
                {"$set": {"order": item.order}},
            )
        except PyMongoError as e:
            logger.warning("Order update failed for %s/%s: %s", locale, item.id, e)
            entry["status"] = "failed"
            entry["error"] = str(e)
        else:
            if result.matched_count == 0:
                entry["status"] = "missing"
            elif result.modified_count == 0:
                entry["status"] = "unchanged"
            else:
                entry["status"] = "updated"
        results.append(entry)
    return results


# ======
# Delete
# ======

def delete_project(db: Database, locale: str, project_id: str, upload_root: str) -> dict:
    """Remove a project together with its other-locale twin and their image files."""
    project = find_project(db, locale, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")

    original_id = project["originalId"]
    images = list(project.get("images") or [])
    sibling = projects_collection(db).find_one({"locale": other_locale(locale), "originalId": original_id})
    if sibling is not None:
        images.extend(img for img in sibling.get("images") or [] if img not in images)

    projects_collection(db).delete_one({"_id": project["_id"]})
    if sibling is not None:
        projects_collection(db).delete_one({"_id": sibling["_id"]})
    logger.info("Deleted %s project %s (originalId=%s)", locale, project["id"], original_id)

    files = delete_image_files(images, upload_root)
    if files["errors"]:
        logger.warning("Images not deleted for %s: %s", project["id"], files["errors"])
    return {
        "success": True,
        "message": "Project and its translation deleted",
        "id": project["id"],
        "siblingId": sibling["id"] if sibling else None,
        "deletedImages": files["success"],
        "missingImages": files["errors"],
    }


# =========
# Reconcile
# =========

def reconcile_pairs(db: Database) -> dict:
    """Repair pairs left partial or failed by an interrupted sibling write."""
    summary = {"siblingsCreated": 0, "imagesPropagated": 0, "synced": 0, "unresolved": []}
    coll = projects_collection(db)
    for project in list(coll.find({"locale": "tr", "pairingStatus": {"$ne": SYNCED}})):
        original_id = project["originalId"]
        sibling = coll.find_one({"locale": "en", "originalId": original_id})
        if sibling is None:
            if create_sibling(db, project):
                summary["siblingsCreated"] += 1
                summary["synced"] += 1
            else:
                summary["unresolved"].append(project["id"])
            continue
        if project.get("images") and sibling.get("images") != project.get("images"):
            if not propagate_images(db, "tr", original_id, project["images"]):
                summary["unresolved"].append(project["id"])
                continue
            summary["imagesPropagated"] += 1
        _set_pairing_status(db, original_id, SYNCED)
        summary["synced"] += 1

    # EN documents without a TR twin need a human
    for project in coll.find({"locale": "en", "pairingStatus": {"$ne": SYNCED}}):
        if coll.find_one({"locale": "tr", "originalId": project["originalId"]}, {"_id": 1}) is None:
            summary["unresolved"].append(project["id"])
        else:
            _set_pairing_status(db, project["originalId"], SYNCED)
            summary["synced"] += 1
    logger.info("Pair reconciliation finished: %s", summary)
    return summary


# ============
# Admin routes
# ============
# Fixed paths are declared before the {locale} routes they would otherwise match.

@router.post("/api/admin/projects/order")
def admin_reorder_projects(
    data: OrderRequest,
    background_tasks: BackgroundTasks,
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
    revalidator: Revalidator = Depends(get_revalidator),
):
    locale = require_locale(data.locale)
    results = reorder_projects(db, locale, data.orders)
    if results and not any(r["status"] in ("updated", "unchanged") for r in results):
        raise HTTPException(status_code=404, detail={"message": "No projects matched", "results": results})
    background_tasks.add_task(revalidator.revalidate_targets, project_targets(locale))
    return {
        "success": True,
        "updated": sum(1 for r in results if r["status"] == "updated"),
        "results": results,
    }


@router.get("/api/admin/projects/slug-check")
def admin_slug_check(
    slug: str = Query(""),
    locale: str = Query("tr"),
    originalId: Optional[str] = Query(None),
    currentId: Optional[str] = Query(None),
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    if not slug:
        raise HTTPException(status_code=400, detail="slug is required")
    return check_slug(db, slug, require_locale(locale), originalId, currentId)


@router.post("/api/admin/projects/reconcile")
def admin_reconcile_pairs(_: AdminIdentity = Depends(get_current_admin), db: Database = Depends(get_db)):
    return reconcile_pairs(db)


@router.get("/api/admin/projects/{locale}")
def admin_list_projects(locale: str, _: AdminIdentity = Depends(get_current_admin), db: Database = Depends(get_db)):
    return list_projects(db, require_locale(locale))


@router.post("/api/admin/projects/{locale}", status_code=201)
def admin_create_project(
    locale: str,
    data: ProjectIn,
    background_tasks: BackgroundTasks,
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
    revalidator: Revalidator = Depends(get_revalidator),
):
    created = create_project(db, require_locale(locale), data)
    background_tasks.add_task(revalidator.revalidate_targets, project_targets(locale, created["id"]))
    return created


@router.get("/api/admin/projects/{locale}/by-original-id/{original_id}")
def admin_get_by_original_id(
    locale: str,
    original_id: str,
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    return serialize(get_by_original_id(db, require_locale(locale), original_id))


@router.put("/api/admin/projects/{locale}/by-original-id/{original_id}")
def admin_update_by_original_id(
    locale: str,
    original_id: str,
    data: ProjectIn,
    background_tasks: BackgroundTasks,
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
    revalidator: Revalidator = Depends(get_revalidator),
):
    updated = update_project(db, require_locale(locale), original_id, data)
    background_tasks.add_task(revalidator.revalidate_targets, project_targets(locale, updated["id"]))
    background_tasks.add_task(revalidator.revalidate_targets, project_targets(other_locale(locale)))
    return updated


@router.get("/api/admin/projects/{locale}/{project_id}")
def admin_get_project(
    locale: str,
    project_id: str,
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    project = find_project(db, require_locale(locale), project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return serialize(project)


@router.put("/api/admin/projects/{locale}/{project_id}")
def admin_update_project(
    locale: str,
    project_id: str,
    data: ProjectIn,
    background_tasks: BackgroundTasks,
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
    revalidator: Revalidator = Depends(get_revalidator),
):
    project = find_project(db, require_locale(locale), project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    updated = update_project(db, locale, project["originalId"], data)
    background_tasks.add_task(revalidator.revalidate_targets, project_targets(locale, updated["id"]))
    background_tasks.add_task(revalidator.revalidate_targets, project_targets(other_locale(locale)))
    return updated


@router.delete("/api/admin/projects/{locale}/{project_id}")
def admin_delete_project(
    locale: str,
    project_id: str,
    background_tasks: BackgroundTasks,
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
    upload_root: str = Depends(get_upload_root),
    revalidator: Revalidator = Depends(get_revalidator),
):
    result = delete_project(db, require_locale(locale), project_id, upload_root)
    background_tasks.add_task(revalidator.revalidate_targets, project_targets(locale, result["id"]))
    background_tasks.add_task(revalidator.revalidate_targets, project_targets(other_locale(locale)))
    return result


# =============
# Public routes
# =============

@router.get("/api/projects/{locale}")
def public_list_projects(locale: str, response: Response, db: Database = Depends(get_db)):
    response.headers["Cache-Control"] = PUBLIC_CACHE_CONTROL
    return list_projects(db, require_locale(locale), published_only=True)


@router.get("/api/projects/{locale}/{project_id}")
def public_get_project(locale: str, project_id: str, response: Response, db: Database = Depends(get_db)):
    project = find_project(db, require_locale(locale), project_id, extra={"status": True})
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    response.headers["Cache-Control"] = PUBLIC_CACHE_CONTROL
    return serialize(project)
