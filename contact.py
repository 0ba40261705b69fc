import html
import logging
import re

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

import settings
from auth import AdminIdentity, get_current_admin
from database import create_document, get_db, serialize
from mailer import BrevoMailer, MailerError, get_mailer
from rate_limit import RateLimiter
from schemas import ContactForm, ContactRequest, ReadFlag
from site_config import DEFAULT_CONTACT_EMAIL, get_site_config

logger = logging.getLogger(__name__)

router = APIRouter()

_contact_limiter = RateLimiter(settings.CONTACT_RATE_LIMIT, settings.CONTACT_RATE_WINDOW_SECONDS)


def get_contact_limiter() -> RateLimiter:
    return _contact_limiter


def client_ip(request: Request) -> str:
    if settings.TRUST_PROXY:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def render_notification(data: ContactRequest, ip: str, user_agent: str) -> str:
    message = html.escape(data.message).replace("\n", "<br>")
    return (
        "<h2>New contact form message</h2>"
        f"<p><strong>Name:</strong> {html.escape(data.name)}</p>"
        f"<p><strong>Email:</strong> {html.escape(str(data.email))}</p>"
        f"<p><strong>Message:</strong></p><p>{message}</p>"
        f"<hr><p><small>IP: {html.escape(ip)}</small></p>"
        f"<p><small>User Agent: {html.escape(user_agent)}</small></p>"
    )


def _object_id(form_id: str) -> ObjectId:
    try:
        return ObjectId(form_id)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id")


# =============
# Public routes
# =============

@router.post("/api/contact")
def submit_contact(
    data: ContactRequest,
    request: Request,
    db: Database = Depends(get_db),
    limiter: RateLimiter = Depends(get_contact_limiter),
    mailer: BrevoMailer = Depends(get_mailer),
):
    ip = client_ip(request)
    user_agent = request.headers.get("user-agent", "unknown")

    limit = limiter.check(ip)
    if not limit.allowed:
        logger.warning("Contact form throttled for %s", ip)
        return JSONResponse(
            status_code=429,
            content={
                "detail": "Too many requests, please try again later",
                "limit": limit.limit,
                "remaining": limit.remaining,
                "reset": int(limit.reset_at),
            },
            headers=limit.headers(),
        )

    if data.honeypot:
        # bots get the same answer as people
        logger.info("Honeypot triggered from %s", ip)
        return {"success": True}

    create_document(db, "contactforms", ContactForm(
        name=data.name,
        email=str(data.email),
        message=data.message,
        ipAddress=ip,
        userAgent=user_agent,
    ))

    contact_email = get_site_config(db).get("contactEmail") or DEFAULT_CONTACT_EMAIL
    try:
        mailer.send(
            sender=contact_email,
            to=contact_email,
            subject=f"New contact form: {data.name}",
            html=render_notification(data, ip, user_agent),
        )
    except MailerError as e:
        logger.error("Contact notification not sent: %s", e)
        return {"success": True, "warning": "Message saved but the notification e-mail could not be sent"}
    return {"success": True}


# ============
# Admin routes
# ============

@router.get("/api/admin/contact-forms")
def list_contact_forms(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str = Query(""),
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    query = {}
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"email": pattern}, {"message": pattern}]
    total = db["contactforms"].count_documents(query)
    forms = (
        db["contactforms"].find(query)
        .sort("createdAt", DESCENDING)
        .skip((page - 1) * limit)
        .limit(limit)
    )
    return {
        "forms": [serialize(f) for f in forms],
        "page": page,
        "limit": limit,
        "totalPages": (total + limit - 1) // limit,
        "totalCount": total,
    }


@router.get("/api/admin/contact-forms/{form_id}")
def get_contact_form(form_id: str, _: AdminIdentity = Depends(get_current_admin), db: Database = Depends(get_db)):
    form = db["contactforms"].find_one({"_id": _object_id(form_id)})
    if form is None:
        raise HTTPException(status_code=404, detail="Contact form not found")
    return {"form": serialize(form)}


@router.delete("/api/admin/contact-forms/{form_id}")
def delete_contact_form(form_id: str, _: AdminIdentity = Depends(get_current_admin), db: Database = Depends(get_db)):
    result = db["contactforms"].delete_one({"_id": _object_id(form_id)})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Contact form not found")
    logger.info("Deleted contact form %s", form_id)
    return {"success": True, "message": "Contact form deleted", "deletedId": form_id}


@router.put("/api/admin/contact-forms/{form_id}/read")
def mark_contact_form(
    form_id: str,
    data: ReadFlag,
    _: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    form = db["contactforms"].find_one_and_update(
        {"_id": _object_id(form_id)},
        {"$set": {"isRead": data.isRead}},
        return_document=ReturnDocument.AFTER,
    )
    if form is None:
        raise HTTPException(status_code=404, detail="Contact form not found")
    return {
        "success": True,
        "message": "Marked as read" if data.isRead else "Marked as unread",
        "form": serialize(form),
    }
