import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import settings
from auth import router as auth_router
from contact import router as contact_router
from content import router as content_router
from database import db, ensure_indexes
from projects import router as projects_router
from seo import router as seo_router
from site_config import router as site_config_router
from uploads import router as uploads_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def prepare_database(database) -> None:
    if database is None:
        logger.warning("DATABASE_URL is not set; database routes will answer 500")
        return
    try:
        ensure_indexes(database)
    except PyMongoError as e:
        logger.error("Could not ensure indexes: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    prepare_database(db)
    yield


# ==================
# FastAPI app config
# ==================
app = FastAPI(title="Portfolio CMS API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, tags=["auth"])
app.include_router(content_router, tags=["content"])
app.include_router(projects_router, tags=["projects"])
app.include_router(seo_router, tags=["seo"])
app.include_router(site_config_router, tags=["site-config"])
app.include_router(contact_router, tags=["contact"])
app.include_router(uploads_router, tags=["uploads"])


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ======
# Routes
# ======
@app.get("/")
def root():
    return {"status": "ok", "service": "portfolio-cms-api"}


@app.get("/test")
def test_database():
    ok = db is not None
    collections = []
    if ok:
        try:
            collections = db.list_collection_names()
        except PyMongoError as e:
            logger.warning("Database check failed: %s", e)
            ok = False
    return {"backend": "running", "database": "connected" if ok else "not-available", "collections": collections[:10]}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
