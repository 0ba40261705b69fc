"""
Localized page copy.

Stored content documents are seeded once per locale and edited through the
admin panel. Public pages never read them directly: `resolve_content` lays
the stored document over the built-in copy for the locale, so a missing or
half-filled document still renders.
"""

import copy
import hmac
import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Header, HTTPException, Query, Response
from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.database import Database

import settings
from auth import AdminIdentity, get_current_admin
from database import get_db, now, serialize
from projects import list_projects
from revalidation import Revalidator, content_targets, get_revalidator
from schemas import ContentUpdate, ContentView, require_locale
from site_config import PUBLIC_CACHE_CONTROL, get_site_config

logger = logging.getLogger(__name__)

SERVER_MANAGED_FIELDS = ("_id", "__v", "createdAt", "updatedAt", "locale")

router = APIRouter()


def _skills(frontend: str, backend: str, database: str) -> dict:
    return {
        "frontend": {"title": frontend, "skills": []},
        "backend": {"title": backend, "skills": []},
        "database": {"title": database, "skills": []},
    }


DEFAULT_CONTENT: Dict[str, Dict[str, Any]] = {
    "tr": {
        "locale": "tr",
        "nav": {"links": [
            {"label": "Ana Sayfa", "url": "/", "order": 0},
            {"label": "Hakkımda", "url": "#about", "order": 1},
            {"label": "Projeler", "url": "/projects", "order": 2},
            {"label": "İletişim", "url": "#contact", "order": 3},
        ]},
        "hero": {
            "title": "Seramik Sanatçısı",
            "description": "",
            "contactButton": "İletişime Geç",
            "projectsButton": "Projeleri Gör",
        },
        "about": {
            "title": "Hakkımda",
            "description": "",
            "experience": {"title": "Deneyim", "description": ""},
            "education": {"title": "Eğitim", "description": ""},
        },
        "skills": {
            "title": "Yetenekler",
            "description": "",
            "categories": _skills("Seramik Teknikleri", "Malzeme Bilgisi", "Tasarım"),
        },
        "expertise": {"title": "Uzmanlık Alanları", "description": "", "categories": []},
        "contact": {
            "title": "İletişim",
            "description": "",
            "info": {"title": "İletişim Bilgileri", "location": "İstanbul, Türkiye"},
            "form": {
                "title": "Mesaj Gönder",
                "name": "Adınız",
                "email": "E-posta",
                "message": "Mesajınız",
                "submit": "Gönder",
            },
        },
        "footer": {
            "description": "",
            "quickLinks": {"title": "Hızlı Bağlantılar", "links": []},
            "contact": {"title": "İletişim", "email": "", "location": "İstanbul, Türkiye"},
            "socialMedia": {"email": ""},
            "rights": "Tüm hakları saklıdır.",
        },
    },
    "en": {
        "locale": "en",
        "nav": {"links": [
            {"label": "Home", "url": "/", "order": 0},
            {"label": "About", "url": "#about", "order": 1},
            {"label": "Projects", "url": "/projects", "order": 2},
            {"label": "Contact", "url": "#contact", "order": 3},
        ]},
        "hero": {
            "title": "Ceramic Artist",
            "description": "",
            "contactButton": "Get in Touch",
            "projectsButton": "View Projects",
        },
        "about": {
            "title": "About",
            "description": "",
            "experience": {"title": "Experience", "description": ""},
            "education": {"title": "Education", "description": ""},
        },
        "skills": {
            "title": "Skills",
            "description": "",
            "categories": _skills("Ceramic Techniques", "Material Knowledge", "Design"),
        },
        "expertise": {"title": "Expertise", "description": "", "categories": []},
        "contact": {
            "title": "Contact",
            "description": "",
            "info": {"title": "Contact Information", "location": "Istanbul, Turkey"},
            "form": {
                "title": "Send a Message",
                "name": "Your Name",
                "email": "Email",
                "message": "Your Message",
                "submit": "Send",
            },
        },
        "footer": {
            "description": "",
            "quickLinks": {"title": "Quick Links", "links": []},
            "contact": {"title": "Contact", "email": "", "location": "Istanbul, Turkey"},
            "socialMedia": {"email": ""},
            "rights": "All rights reserved.",
        },
    },
}


def strip_server_fields(value: Any, top_level: bool = True) -> Any:
    """Drop store managed keys; nested array items carry their own _id."""
    if isinstance(value, dict):
        drop = SERVER_MANAGED_FIELDS if top_level else ("_id", "__v")
        return {k: strip_server_fields(v, False) for k, v in value.items() if k not in drop}
    if isinstance(value, list):
        return [strip_server_fields(v, False) for v in value]
    return value


def deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        elif value is not None:
            merged[key] = copy.deepcopy(value)
    return merged


def resolve_content(db: Database, locale: str) -> ContentView:
    """
    Page copy for one locale.

    Precedence: stored content document, then the built-in copy for the locale.
    A stored document that no longer fits the content schema is ignored as a
    whole rather than partially rendered.
    """
    defaults = DEFAULT_CONTENT[locale]
    stored = db["contents"].find_one({"locale": locale})
    if stored is None:
        return ContentView.model_validate(defaults)
    merged = deep_merge(defaults, strip_server_fields(stored))
    merged["locale"] = locale
    try:
        return ContentView.model_validate(merged)
    except ValidationError as e:
        logger.warning("Stored %s content does not match the schema, using defaults: %s", locale, e)
        return ContentView.model_validate(defaults)


def get_content(db: Database, locale: str) -> dict:
    content = db["contents"].find_one({"locale": locale})
    if content is None:
        raise HTTPException(status_code=404, detail="Content not found")
    return serialize(content)


def validate_content_payload(payload: Dict[str, Any]) -> dict:
    try:
        validated = ContentUpdate.model_validate(strip_server_fields(payload))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_context=False))
    return validated.model_dump(exclude_unset=True)


def update_content(db: Database, locale: str, payload: Dict[str, Any], upsert: bool = False) -> dict:
    update = validate_content_payload(payload)
    stamp = now()
    update["updatedAt"] = stamp
    saved = db["contents"].find_one_and_update(
        {"locale": locale},
        {"$set": update, "$setOnInsert": {"createdAt": stamp}},
        upsert=upsert,
        return_document=ReturnDocument.AFTER,
    )
    if saved is None:
        raise HTTPException(status_code=404, detail="Content not found")
    logger.info("Updated %s content sections: %s", locale, ", ".join(k for k in update if k != "updatedAt"))
    return serialize(saved)


# ============
# Admin routes
# ============

@router.get("/api/admin/content/{locale}")
def admin_get_content(locale: str, _: AdminIdentity = Depends(get_current_admin), db: Database = Depends(get_db)):
    return get_content(db, require_locale(locale))


@router.put("/api/admin/content/{locale}")
def admin_update_content(
    locale: str,
    background_tasks: BackgroundTasks,
    payload: Dict[str, Any] = Body(...),
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
    revalidator: Revalidator = Depends(get_revalidator),
):
    saved = update_content(db, require_locale(locale), payload)
    background_tasks.add_task(revalidator.revalidate_targets, content_targets(locale))
    return saved


@router.get("/api/admin/revalidate")
def admin_revalidate(
    path: str = Query(None),
    tag: str = Query(None),
    locale: str = Query(None),
    _: AdminIdentity = Depends(get_current_admin),
    revalidator: Revalidator = Depends(get_revalidator),
):
    if path or tag:
        result = revalidator.revalidate([path] if path else [], [tag] if tag else [])
    elif locale:
        result = revalidator.revalidate_targets(content_targets(require_locale(locale)))
    else:
        raise HTTPException(status_code=400, detail="path, tag or locale is required")
    return {"revalidated": True, **result.as_dict()}


@router.get("/api/admin/stats")
def admin_stats(_: AdminIdentity = Depends(get_current_admin), db: Database = Depends(get_db)):
    contents = {c["locale"]: c for c in db["contents"].find({}, {"locale": 1, "updatedAt": 1})}
    return {
        "projectCount": db["projects"].count_documents({"locale": "tr"}),
        "trContentUpdated": contents.get("tr", {}).get("updatedAt"),
        "enContentUpdated": contents.get("en", {}).get("updatedAt"),
        "unreadMessages": db["contactforms"].count_documents({"isRead": False}),
    }


# =============
# Public routes
# =============

@router.get("/api/content")
def public_resolved_content(response: Response, locale: str = Query("tr"), db: Database = Depends(get_db)):
    response.headers["Cache-Control"] = PUBLIC_CACHE_CONTROL
    return resolve_content(db, require_locale(locale))


@router.get("/api/content/{locale}")
def public_get_content(locale: str, response: Response, db: Database = Depends(get_db)):
    content = get_content(db, require_locale(locale))
    response.headers["Cache-Control"] = PUBLIC_CACHE_CONTROL
    return content


@router.put("/api/content/{locale}")
def sync_content(
    locale: str,
    background_tasks: BackgroundTasks,
    payload: Dict[str, Any] = Body(...),
    x_revalidate_secret: str = Header(None),
    db: Database = Depends(get_db),
    revalidator: Revalidator = Depends(get_revalidator),
):
    """Content sync for deploy tooling, authorized by the shared revalidation secret."""
    require_locale(locale)
    if not settings.REVALIDATE_SECRET or not hmac.compare_digest(x_revalidate_secret or "", settings.REVALIDATE_SECRET):
        raise HTTPException(status_code=401, detail="Unauthorized")
    saved = update_content(db, locale, payload, upsert=True)
    background_tasks.add_task(revalidator.revalidate_targets, content_targets(locale))
    return saved


@router.get("/api/pages/{locale}")
def public_page(locale: str, response: Response, db: Database = Depends(get_db)):
    """Everything the public home page renders for one locale."""
    require_locale(locale)
    config = get_site_config(db)
    projects = list_projects(db, locale, published_only=True)
    response.headers["Cache-Control"] = PUBLIC_CACHE_CONTROL
    return {
        "locale": locale,
        "content": resolve_content(db, locale),
        "projects": projects,
        "site": {
            "logo": config.get("logo"),
            "displayEmail": config.get("displayEmail"),
            "seo": config.get("seo"),
            "pagination": config.get("pagination"),
            "robotsEnabled": config.get("robotsEnabled", False),
        },
    }
