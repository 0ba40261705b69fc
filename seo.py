"""
Draft SEO fields for a project from its title and description.

The text comes from a hosted instruction model. It is only a suggestion for
the admin form, so every failure (no API key, provider error, unreadable
answer) yields empty fields instead of an error.
"""

import logging
import re
from typing import Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException

import settings
from auth import AdminIdentity, get_current_admin
from schemas import SeoRequest

logger = logging.getLogger(__name__)

INFERENCE_ENDPOINT = "https://api-inference.huggingface.co/models/mistralai/Mistral-7B-Instruct-v0.2"
SEO_FIELDS = ("metaTitle", "metaDescription", "metaKeywords", "ogTitle", "ogDescription")

# label fragments per field, English and Turkish; og labels are checked first
_LABELS = (
    ("ogTitle", ("og title", "og başlık")),
    ("ogDescription", ("og description", "og açıklama")),
    ("metaTitle", ("meta title", "meta başlık")),
    ("metaDescription", ("meta description", "meta açıklama")),
    ("metaKeywords", ("meta keywords", "meta anahtar")),
)

PROMPTS = {
    "en": (
        "Generate SEO metadata for a project with the following details:\n"
        "Title: {title}\nDescription: {description}\nTechnologies: {technologies}\n\n"
        "Please provide the following fields:\n"
        "1. Meta Title (max 60 characters)\n"
        "2. Meta Description (max 160 characters)\n"
        "3. Meta Keywords (comma separated)\n"
        "4. OG Title (max 60 characters)\n"
        "5. OG Description (max 160 characters)\n\n"
        "Format your response as clear labeled fields with values, like:\n"
        "Meta Title: [your meta title]\nMeta Description: [your meta description]"
    ),
    "tr": (
        "Şu bilgilere sahip bir proje için SEO meta verileri oluştur:\n"
        "Başlık: {title}\nAçıklama: {description}\nTeknolojiler: {technologies}\n\n"
        "Lütfen aşağıdaki alanları sağla:\n"
        "1. Meta Başlık (maksimum 60 karakter)\n"
        "2. Meta Açıklama (maksimum 160 karakter)\n"
        "3. Meta Anahtar Kelimeler (virgülle ayrılmış)\n"
        "4. OG Başlık (maksimum 60 karakter)\n"
        "5. OG Açıklama (maksimum 160 karakter)\n\n"
        "Yanıtını şöyle formatla:\n"
        "Meta Başlık: [meta başlık]\nMeta Açıklama: [meta açıklama]"
    ),
}

router = APIRouter()


def empty_seo() -> Dict[str, str]:
    return {field: "" for field in SEO_FIELDS}


def _extract_value(line: str) -> str:
    if ":" not in line:
        return ""
    value = line.split(":", 1)[1].strip()
    value = re.sub(r"^\d+\.\s*", "", value)
    return value.strip("\"'")


def parse_seo_text(text: str) -> Dict[str, str]:
    """Pick labelled fields out of the model's answer; og fields fall back to the meta ones."""
    seo = empty_seo()
    for line in text.splitlines():
        lower = line.lower()
        for field, labels in _LABELS:
            if any(label in lower for label in labels):
                seo[field] = _extract_value(line)
                break
    seo["ogTitle"] = seo["ogTitle"] or seo["metaTitle"]
    seo["ogDescription"] = seo["ogDescription"] or seo["metaDescription"]
    return seo


class SeoGenerator:
    def __init__(
        self,
        api_key: Optional[str],
        endpoint: str = INFERENCE_ENDPOINT,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout
        self.transport = transport

    def generate(self, title: str, description: str, technologies: List[str], locale: str) -> Dict[str, str]:
        if not self.api_key:
            logger.warning("HUGGINGFACE_API_KEY is not configured, returning empty SEO fields")
            return empty_seo()
        prompt = PROMPTS["en" if locale == "en" else "tr"].format(
            title=title,
            description=description,
            technologies=", ".join(technologies),
        )
        payload = {
            "inputs": prompt,
            "parameters": {"max_new_tokens": 250, "temperature": 0.7, "top_p": 0.9, "do_sample": True},
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    self.endpoint,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("SEO generation request failed: %s", e)
            return empty_seo()

        if not isinstance(data, list) or not data or not isinstance(data[0], dict) or "generated_text" not in data[0]:
            logger.warning("Unexpected SEO generation response: %r", data)
            return empty_seo()
        return parse_seo_text(str(data[0]["generated_text"]))


_generator = SeoGenerator(settings.HUGGINGFACE_API_KEY)


def get_seo_generator() -> SeoGenerator:
    return _generator


@router.post("/api/admin/seo-generator")
def generate_seo(
    data: SeoRequest,
    _: AdminIdentity = Depends(get_current_admin),
    generator: SeoGenerator = Depends(get_seo_generator),
):
    if not data.title.strip() or not data.description.strip():
        raise HTTPException(status_code=400, detail="title and description are required")
    return generator.generate(data.title, data.description, data.technologies, data.locale)
