# config.py

"""Configuration for toolsmith."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# Data root (bundles, local database)
DATA_ROOT = Path(os.getenv("TOOLSMITH_DATA_ROOT", str(PROJECT_ROOT / "data")))

# --- DATABASE CONFIGURATION ---
# PostgreSQL in production (postgresql+asyncpg://...), SQLite for local runs.
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite+aiosqlite:///{DATA_ROOT / 'toolsmith.db'}")

DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Request Size Limits
MAX_REQUEST_BODY_SIZE = int(os.getenv("MAX_REQUEST_BODY_SIZE", 1 * 1024 * 1024))  # 1MB default

# Public addressing: https://{slug}.tool.{BASE_DOMAIN}
BASE_DOMAIN = os.getenv("BASE_DOMAIN", "prompt-machine.com")

# API origin that deployed bundles submit to
PUBLIC_API_URL = os.getenv("PUBLIC_API_URL", f"https://api.{BASE_DOMAIN}")

# Bundle host root (one directory/symlink per deployed slug)
BUNDLE_ROOT = Path(os.getenv("BUNDLE_ROOT", str(DATA_ROOT / "deployed-tools")))

# Undeploy keeps the project's subdomain unless told otherwise
RETAIN_SUBDOMAIN_ON_UNDEPLOY = os.getenv("RETAIN_SUBDOMAIN_ON_UNDEPLOY", "true").lower() == "true"

# Completion service defaults (used when no ai_config version is active)
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "anthropic")
LLM_MODEL = os.getenv("LLM_MODEL", "sonnet")
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "2048"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

# Access policy
DEFAULT_DAILY_REQUEST_LIMIT = int(os.getenv("DEFAULT_DAILY_REQUEST_LIMIT", "25"))

# Caller credential signing key
AUTH_TOKEN_SECRET = os.getenv("AUTH_TOKEN_SECRET", "dev-only-change-me")

# Subjects allowed to publish ai_config versions (comma-separated; empty allows any identity)
AI_CONFIG_ADMINS = [s.strip() for s in os.getenv("AI_CONFIG_ADMINS", "").split(",") if s.strip()]


class Settings:
    """Settings class for configuration."""

    def __init__(self):
        self.PROJECT_ROOT = PROJECT_ROOT
        self.DATA_ROOT = DATA_ROOT
        # --- DATABASE ---
        self.DATABASE_URL = DATABASE_URL
        self.DB_POOL_SIZE = DB_POOL_SIZE
        self.DB_MAX_OVERFLOW = DB_MAX_OVERFLOW
        # --- API ---
        self.API_HOST = API_HOST
        self.API_PORT = API_PORT
        self.MAX_REQUEST_BODY_SIZE = MAX_REQUEST_BODY_SIZE
        # --- DEPLOYMENT ---
        self.BASE_DOMAIN = BASE_DOMAIN
        self.PUBLIC_API_URL = PUBLIC_API_URL
        self.BUNDLE_ROOT = BUNDLE_ROOT
        self.RETAIN_SUBDOMAIN_ON_UNDEPLOY = RETAIN_SUBDOMAIN_ON_UNDEPLOY
        # --- LLM ---
        self.ANTHROPIC_API_KEY = ANTHROPIC_API_KEY
        self.LLM_PROVIDER = LLM_PROVIDER
        self.LLM_MODEL = LLM_MODEL
        self.LLM_MAX_TOKENS = LLM_MAX_TOKENS
        self.LLM_TEMPERATURE = LLM_TEMPERATURE
        self.LLM_TIMEOUT_SECONDS = LLM_TIMEOUT_SECONDS
        # --- ACCESS ---
        self.DEFAULT_DAILY_REQUEST_LIMIT = DEFAULT_DAILY_REQUEST_LIMIT
        self.AUTH_TOKEN_SECRET = AUTH_TOKEN_SECRET
        self.AI_CONFIG_ADMINS = AI_CONFIG_ADMINS

    def public_url(self, slug: str) -> str:
        """Public address for a deployed slug."""
        return f"https://{slug}.tool.{self.BASE_DOMAIN}"


# Global settings instance
settings = Settings()
