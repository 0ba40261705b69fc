import copy
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response
from pymongo import ReturnDocument
from pymongo.database import Database

import settings
from auth import AdminIdentity, get_current_admin
from database import get_db, now, serialize
from revalidation import Revalidator, get_revalidator, site_targets
from schemas import LocalizedText, SiteConfigIn
from uploads import delete_image_file, get_upload_root

logger = logging.getLogger(__name__)

DEFAULT_OG_IMAGE = "/logo.webp"
DEFAULT_CONTACT_EMAIL = "info@eylulkurtcebe.com"
MIN_ITEMS_PER_PAGE = 3
MAX_ITEMS_PER_PAGE = 30
DEFAULT_ITEMS_PER_PAGE = 9
PUBLIC_CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=300"

DEFAULT_SITE_CONFIG = {
    "contactEmail": DEFAULT_CONTACT_EMAIL,
    "displayEmail": DEFAULT_CONTACT_EMAIL,
    "logo": DEFAULT_OG_IMAGE,
    "seo": {
        "title": {
            "tr": "Eylül Kurtcebe - Kişisel Portfolyo",
            "en": "Eylul Kurtcebe - Personal Portfolio",
        },
        "description": {
            "tr": "Eylül Kurtcebe kişisel portfolyo sitesi",
            "en": "Eylul Kurtcebe personal portfolio site",
        },
        "keywords": {
            "tr": "seramik sanatçısı, sır geliştirme, çömlekçilik, seramik",
            "en": "ceramic artist, glaze development, pottery, ceramics",
        },
        "ogImage": DEFAULT_OG_IMAGE,
    },
    "pagination": {"itemsPerPage": DEFAULT_ITEMS_PER_PAGE},
    "robotsEnabled": False,
}

router = APIRouter()


def get_site_config(db: Database) -> dict:
    """Stored singleton, or the built-in fallback when none was saved yet."""
    config = db["siteconfigs"].find_one({})
    if config is None:
        return copy.deepcopy(DEFAULT_SITE_CONFIG)
    return serialize(config)


def default_og_image(db: Database) -> str:
    config = db["siteconfigs"].find_one({}) or {}
    return (config.get("seo") or {}).get("ogImage") or DEFAULT_OG_IMAGE


def _localized(value) -> dict:
    if isinstance(value, LocalizedText):
        return value.model_dump()
    return {"tr": value or "", "en": ""}


def _items_per_page(value) -> int:
    try:
        items = int(value)
    except (TypeError, ValueError):
        return DEFAULT_ITEMS_PER_PAGE
    if items <= 0:
        return DEFAULT_ITEMS_PER_PAGE
    return max(MIN_ITEMS_PER_PAGE, min(MAX_ITEMS_PER_PAGE, items))


def save_site_config(db: Database, data: SiteConfigIn, upload_root: str) -> dict:
    if not data.contactEmail or not data.displayEmail:
        raise HTTPException(status_code=400, detail="contactEmail and displayEmail are required")

    existing = db["siteconfigs"].find_one({})
    old_logo = (existing or {}).get("logo")
    old_og_image = ((existing or {}).get("seo") or {}).get("ogImage")

    seo = data.seo
    update = {
        "contactEmail": data.contactEmail.strip(),
        "displayEmail": data.displayEmail.strip(),
        "logo": data.logo or old_logo or DEFAULT_OG_IMAGE,
        "seo": {
            "title": _localized(seo.title if seo else None),
            "description": _localized(seo.description if seo else None),
            "keywords": _localized(seo.keywords if seo else None),
            "ogImage": (seo.ogImage if seo else None) or DEFAULT_OG_IMAGE,
        },
        "pagination": {
            "itemsPerPage": _items_per_page(data.pagination.itemsPerPage if data.pagination else None),
        },
        "robotsEnabled": bool(data.robotsEnabled) if data.robotsEnabled is not None else False,
        "updatedAt": now(),
    }

    if existing is None:
        update["createdAt"] = update["updatedAt"]
        db["siteconfigs"].insert_one(update)
        logger.info("Site configuration created")
        return serialize(update)

    saved = db["siteconfigs"].find_one_and_update(
        {"_id": existing["_id"]},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )

    # replaced images are no longer referenced anywhere
    for old, new in ((old_logo, update["logo"]), (old_og_image, update["seo"]["ogImage"])):
        if old and old != new and old != DEFAULT_OG_IMAGE:
            delete_image_file(old, upload_root)

    logger.info("Site configuration updated")
    return serialize(saved)


# ======
# Routes
# ======

@router.get("/api/site-config")
def read_site_config(db: Database = Depends(get_db)):
    config = get_site_config(db)
    config["siteUrl"] = settings.SITE_URL
    return config


@router.get("/api/site-settings")
def read_site_settings(response: Response, db: Database = Depends(get_db)):
    response.headers["Cache-Control"] = PUBLIC_CACHE_CONTROL
    return get_site_config(db)


@router.get("/api/admin/site-config")
def admin_read_site_config(_: AdminIdentity = Depends(get_current_admin), db: Database = Depends(get_db)):
    return get_site_config(db)


@router.put("/api/admin/site-config")
@router.put("/api/site-config")
def admin_update_site_config(
    data: SiteConfigIn,
    background_tasks: BackgroundTasks,
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
    upload_root: str = Depends(get_upload_root),
    revalidator: Revalidator = Depends(get_revalidator),
):
    saved = save_site_config(db, data, upload_root)
    background_tasks.add_task(revalidator.revalidate_targets, site_targets())
    return {"success": True, "message": "Site settings updated", "data": saved}
