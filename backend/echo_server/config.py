import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

# ------------------------
# MongoDB
# ------------------------

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017/")  # Default for local dev
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "echo")

# ------------------------
# GLM emotion analysis
# ------------------------

GLM_API_KEY = os.getenv("GLM_API_KEY", "")
GLM_API_URL = os.getenv("GLM_API_URL", "https://open.bigmodel.cn/api/paas/v4/chat/completions")
GLM_MODEL = os.getenv("GLM_MODEL", "glm-4-plus")
GLM_TIMEOUT_SECONDS = float(os.getenv("GLM_TIMEOUT_SECONDS", "15"))
GLM_RATE_LIMIT_SECONDS = float(os.getenv("GLM_RATE_LIMIT_SECONDS", "2.0"))  # Min gap between outbound calls

if not GLM_API_KEY:
    logger.warning("GLM_API_KEY not set, emotion analysis will use keyword fallback only")

# ------------------------
# Auth
# ------------------------

SECRET_KEY = os.getenv("JWT_SECRET", "echo-dev-secret-key")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# ------------------------
# Memories
# ------------------------

UNLOCK_RADIUS_KM = float(os.getenv("UNLOCK_RADIUS_KM", "1.0"))
DEFAULT_NEARBY_RADIUS_METERS = 5000
DEFAULT_NEARBY_LIMIT = 50
MAX_NEARBY_LIMIT = 200

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
