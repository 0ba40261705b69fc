import os

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "portfolio")

# Auth. No default secret: a server without one refuses admin requests.
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 12))

# Public site
SITE_URL = os.getenv("SITE_URL", "eylulkurtcebe.com")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Front-end cache revalidation webhook
REVALIDATE_URL = os.getenv("REVALIDATE_URL")
REVALIDATE_SECRET = os.getenv("REVALIDATE_SECRET")

# Outbound mail (Brevo transactional API)
BREVO_API_KEY = os.getenv("BREVO_API_KEY")

# Hosted model used to draft project SEO fields (optional)
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")

# Uploaded files are written below this directory (served as /images/...)
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "public"))

# Contact form throttling
CONTACT_RATE_LIMIT = int(os.getenv("CONTACT_RATE_LIMIT", 5))
CONTACT_RATE_WINDOW_SECONDS = int(os.getenv("CONTACT_RATE_WINDOW_SECONDS", 60))
# Only honour X-Forwarded-For when a reverse proxy in front of the app sets it
TRUST_PROXY = os.getenv("TRUST_PROXY", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
