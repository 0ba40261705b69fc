# Image uploads and deletions below the public files root.
# Project images go to images/projects, site images (logo, OG) to images/site.

import logging
import os
import re
import secrets
import time
from typing import Dict, Iterable, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

import settings
from auth import AdminIdentity, get_current_admin
from schemas import DeleteImageRequest

logger = logging.getLogger(__name__)

MAX_SIZE_BYTES = 5 * 1024 * 1024  # 5 MB
CHUNK_SIZE = 256 * 1024
ALLOWED_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}
UPLOAD_TYPES = {"logo", "ogImage", "project"}
PROJECT_IMAGE_DIR = os.path.join("images", "projects")
SITE_IMAGE_DIR = os.path.join("images", "site")

router = APIRouter()


class FileStorageError(Exception):
    """Base class for upload storage failures."""


class InvalidFileTypeError(FileStorageError):
    pass


class FileTooLargeError(FileStorageError):
    pass


def get_upload_root() -> str:
    return settings.UPLOAD_DIR


def _is_safe_name(file_name: str) -> bool:
    return bool(file_name) and ".." not in file_name and "/" not in file_name and "\\" not in file_name


def build_file_name(upload_type: str, original_name: str) -> str:
    safe = re.sub(r"[^a-zA-Z0-9.-]", "_", original_name or "image")
    base, ext = os.path.splitext(safe)
    return f"{upload_type}_{base or 'image'}_{secrets.token_hex(8)}_{int(time.time() * 1000)}{ext.lower()}"


def save_upload(upload_file: UploadFile, upload_type: str, root: str) -> Dict[str, str]:
    """Validate and write an uploaded image, returning its public URL and file name."""
    if upload_type not in UPLOAD_TYPES:
        raise InvalidFileTypeError("Upload type must be one of logo, ogImage or project")
    if upload_file.content_type not in ALLOWED_MIME_TYPES:
        raise InvalidFileTypeError("Only JPEG, PNG, WebP and GIF images are accepted")

    relative_dir = PROJECT_IMAGE_DIR if upload_type == "project" else SITE_IMAGE_DIR
    target_dir = os.path.join(root, relative_dir)
    os.makedirs(target_dir, exist_ok=True)
    file_name = build_file_name(upload_type, upload_file.filename or "")
    path = os.path.join(target_dir, file_name)

    total = 0
    try:
        with open(path, "wb") as f:
            while True:
                chunk = upload_file.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                total += len(chunk)
                if total > MAX_SIZE_BYTES:
                    raise FileTooLargeError("File size cannot exceed 5MB")
                f.write(chunk)
    except FileTooLargeError:
        os.remove(path)
        raise
    except OSError as e:
        if os.path.exists(path):
            os.remove(path)
        raise FileStorageError(f"Could not save file: {e!s}")

    url = "/" + "/".join([*relative_dir.split(os.sep), file_name])
    logger.info("Stored %s upload %s (%d bytes)", upload_type, url, total)
    return {"url": url, "fileName": file_name}


def resolve_image_path(image_url: str, root: str) -> Optional[str]:
    """Map a public image URL (/images/... or /uploads/images/...) to a file below root."""
    if not image_url or not isinstance(image_url, str):
        return None
    parts = [p for p in image_url.split("?")[0].split("/") if p]
    if "images" not in parts:
        return None
    start = parts.index("uploads") if "uploads" in parts else parts.index("images")
    *dirs, file_name = parts[start:]
    if not _is_safe_name(file_name) or any(d in ("..", ".") for d in dirs):
        return None
    path = os.path.realpath(os.path.join(root, *dirs, file_name))
    if not path.startswith(os.path.realpath(root) + os.sep):
        return None
    return path


def delete_image_file(image_url: str, root: str) -> bool:
    path = resolve_image_path(image_url, root)
    if path is None:
        logger.warning("Refusing to delete unsupported image path: %r", image_url)
        return False
    if not os.path.exists(path):
        logger.info("Image already gone: %s", path)
        return False
    try:
        os.remove(path)
    except OSError as e:
        logger.warning("Could not delete image %s: %s", path, e)
        return False
    logger.info("Deleted image %s", path)
    return True


def delete_image_files(image_urls: Iterable[str], root: str) -> Dict[str, List[str]]:
    results: Dict[str, List[str]] = {"success": [], "errors": []}
    for url in image_urls:
        if delete_image_file(url, root):
            results["success"].append(url)
        else:
            results["errors"].append(url)
    return results


# ======
# Routes
# ======

@router.post("/api/admin/upload")
def upload_image(
    file: UploadFile = File(...),
    upload_type: str = Form(..., alias="type"),
    _: AdminIdentity = Depends(get_current_admin),
    root: str = Depends(get_upload_root),
):
    try:
        stored = save_upload(file, upload_type, root)
    except InvalidFileTypeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e))
    except FileStorageError as e:
        logger.error("Upload failed: %s", e)
        raise HTTPException(status_code=500, detail="File could not be uploaded")
    return {
        "success": True,
        "url": stored["url"],
        "filePath": stored["url"],
        "fileName": stored["fileName"],
        "type": upload_type,
    }


@router.post("/api/admin/deleteImage")
def delete_image(
    data: DeleteImageRequest,
    _: AdminIdentity = Depends(get_current_admin),
    root: str = Depends(get_upload_root),
):
    if not data.fileName:
        raise HTTPException(status_code=400, detail="fileName is required")
    if not _is_safe_name(data.fileName):
        raise HTTPException(status_code=400, detail="Invalid file name")
    path = os.path.join(root, PROJECT_IMAGE_DIR, data.fileName)
    if not os.path.exists(path):
        raise HTTPException(status_code=404, detail="File not found")
    os.remove(path)
    logger.info("Deleted project image %s", data.fileName)
    return {"success": True, "message": "Image deleted", "fileName": data.fileName}
