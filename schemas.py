"""
Database Schemas for the bilingual portfolio CMS

Each Pydantic model below describes either a MongoDB document shape or a
request body accepted at the API boundary. Field names follow the stored
documents (camelCase) so payloads round-trip without renaming.
"""

from typing import List, Literal, Optional, Union

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool

Locale = Literal["tr", "en"]
LOCALES = ("tr", "en")


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


# Auth
class User(BaseModel):
    """
    Admin accounts
    Collection: "users"
    """
    username: str = Field(..., min_length=3)
    password: str  # passlib hash, never the plain text
    isAdmin: bool = True


class LoginRequest(BaseModel):
    username: str
    password: str


class ChangePasswordRequest(BaseModel):
    currentPassword: str
    newPassword: str


# Content
class NavLink(StrictModel):
    label: str
    url: str
    order: Optional[int] = None


class Navigation(StrictModel):
    links: List[NavLink] = []


class Hero(StrictModel):
    title: str
    description: str
    contactButton: str
    projectsButton: str


class TitledText(StrictModel):
    title: str
    description: str


class About(StrictModel):
    title: str
    description: str
    experience: TitledText
    education: TitledText


class Skill(StrictModel):
    name: str
    level: int = Field(..., ge=0, le=100)


class SkillCategory(StrictModel):
    title: str
    skills: List[Skill] = []


class SkillCategories(StrictModel):
    frontend: SkillCategory
    backend: SkillCategory
    database: SkillCategory


class Skills(StrictModel):
    title: str
    description: str
    categories: SkillCategories


class ExpertiseCategory(StrictModel):
    title: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None


class Expertise(StrictModel):
    title: Optional[str] = None
    description: Optional[str] = None
    categories: List[ExpertiseCategory] = []


class ContactInfo(StrictModel):
    title: str
    location: str


class ContactFormLabels(StrictModel):
    title: str
    name: str
    email: str
    message: str
    submit: str


class ContactSection(StrictModel):
    title: str
    description: str
    info: ContactInfo
    form: ContactFormLabels


class QuickLinks(StrictModel):
    title: str
    links: List[NavLink] = []


class FooterContact(StrictModel):
    title: str
    email: str
    location: str
    instagram: Optional[str] = None


class SocialMedia(StrictModel):
    email: str
    linkedin: Optional[str] = None
    instagram: Optional[str] = None


class Footer(StrictModel):
    description: str
    quickLinks: QuickLinks
    contact: FooterContact
    socialMedia: SocialMedia
    rights: str


class ContentUpdate(StrictModel):
    """
    Editable page copy for one locale
    Collection: "contents" (partial $set; only the sections sent are replaced)
    """
    nav: Optional[Navigation] = None
    hero: Optional[Hero] = None
    about: Optional[About] = None
    skills: Optional[Skills] = None
    expertise: Optional[Expertise] = None
    contact: Optional[ContactSection] = None
    footer: Optional[Footer] = None


class ContentView(BaseModel):
    """Fully resolved page copy handed to the public pages."""
    locale: Locale
    nav: Navigation
    hero: Hero
    about: About
    skills: Skills
    expertise: Expertise
    contact: ContactSection
    footer: Footer


# Projects
class ProjectSeo(BaseModel):
    metaTitle: str = ""
    metaDescription: str = ""
    metaKeywords: str = ""
    ogTitle: str = ""
    ogDescription: str = ""
    ogImage: str = ""


class ProjectIn(BaseModel):
    """
    Admin project payload. Server managed fields (_id, locale, originalId,
    pairingStatus, timestamps) are ignored if sent.
    Collection: "projects"
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    images: Optional[List[str]] = None
    technologies: Optional[List[str]] = None
    order: Optional[int] = None
    status: Optional[bool] = None
    seo: Optional[ProjectSeo] = None


class OrderItem(BaseModel):
    id: str = Field(..., min_length=1)
    order: int


class OrderRequest(BaseModel):
    locale: str
    orders: List[OrderItem]


class SeoRequest(BaseModel):
    """Project fields used to draft SEO text; nothing is stored."""
    title: str = ""
    description: str = ""
    technologies: List[str] = []
    locale: str = "tr"


# Site configuration
class LocalizedText(BaseModel):
    tr: str = ""
    en: str = ""


class SiteSeoIn(BaseModel):
    title: Union[LocalizedText, str, None] = None
    description: Union[LocalizedText, str, None] = None
    keywords: Union[LocalizedText, str, None] = None
    ogImage: Optional[str] = None


class PaginationIn(BaseModel):
    itemsPerPage: Optional[Union[int, str]] = None


class SiteConfigIn(BaseModel):
    """
    Singleton site settings
    Collection: "siteconfigs"
    """
    contactEmail: str = ""
    displayEmail: str = ""
    logo: Optional[str] = None
    seo: Optional[SiteSeoIn] = None
    pagination: Optional[PaginationIn] = None
    robotsEnabled: Optional[bool] = None


# Contact
class ContactRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    message: str = Field(..., min_length=10, max_length=1000)
    honeypot: Optional[str] = None


class ContactForm(BaseModel):
    """
    Inbound contact messages
    Collection: "contactforms"
    """
    name: str
    email: str
    message: str
    ipAddress: Optional[str] = None
    userAgent: Optional[str] = None
    isRead: bool = False


class ReadFlag(BaseModel):
    isRead: StrictBool


# Uploads
class DeleteImageRequest(BaseModel):
    fileName: str = ""


def require_locale(locale: str) -> str:
    if locale not in LOCALES:
        raise HTTPException(status_code=400, detail="Unsupported locale")
    return locale


def other_locale(locale: str) -> str:
    return "en" if locale == "tr" else "tr"
