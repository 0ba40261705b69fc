"""
Front-end cache invalidation.

The public pages are rendered and cached by the front-end. After a write that
changes what visitors see, the API asks the front-end to drop the affected
paths and tags through its revalidation webhook. Every path and tag is sent
on its own; one failure is logged and the rest still go out.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import httpx

import settings

logger = logging.getLogger(__name__)


@dataclass
class RevalidationResult:
    paths: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"paths": self.paths, "tags": self.tags, "failed": self.failed}


def content_targets(locale: str) -> Tuple[List[str], List[str]]:
    paths = ["/", f"/{locale}", f"/{locale}/projects", "/api/content", f"/api/content/{locale}"]
    tags = [
        "content",
        "navigation",
        f"content-{locale}",
        f"navigation-{locale}",
        "site-content",
        "footer",
        "site-settings",
    ]
    return paths, tags


def project_targets(locale: str, slug: Optional[str] = None) -> Tuple[List[str], List[str]]:
    paths = ["/", f"/{locale}", f"/{locale}/projects"]
    if slug:
        paths.append(f"/{locale}/projects/{slug}")
    return paths, ["projects", f"projects-{locale}"]


def site_targets() -> Tuple[List[str], List[str]]:
    return ["/"], ["site-settings", "site-content"]


class Revalidator:
    def __init__(
        self,
        url: Optional[str] = None,
        secret: Optional[str] = None,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url
        self.secret = secret
        self.timeout = timeout
        self.transport = transport

    def _send(self, client: httpx.Client, kind: str, value: str) -> None:
        response = client.post(
            self.url,
            json={kind: value},
            headers={"x-revalidate-secret": self.secret or ""},
        )
        response.raise_for_status()

    def revalidate(self, paths: Iterable[str] = (), tags: Iterable[str] = ()) -> RevalidationResult:
        result = RevalidationResult()
        targets = [("path", p) for p in paths] + [("tag", t) for t in tags]
        if not self.url:
            for kind, value in targets:
                logger.debug("Revalidation webhook not configured, skipping %s %s", kind, value)
                (result.paths if kind == "path" else result.tags).append(value)
            return result

        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            for kind, value in targets:
                try:
                    self._send(client, kind, value)
                except httpx.HTTPError as e:
                    logger.warning("Revalidation failed for %s %s: %s", kind, value, e)
                    result.failed.append(value)
                    continue
                (result.paths if kind == "path" else result.tags).append(value)
        logger.info("Revalidated %d paths, %d tags, %d failed", len(result.paths), len(result.tags), len(result.failed))
        return result

    def revalidate_targets(self, targets: Tuple[List[str], List[str]]) -> RevalidationResult:
        paths, tags = targets
        return self.revalidate(paths, tags)


_revalidator = Revalidator(settings.REVALIDATE_URL, settings.REVALIDATE_SECRET)


def get_revalidator() -> Revalidator:
    return _revalidator
