"""Configuration for PastorAI."""

import os
from dotenv import load_dotenv

# Load local env files if present (never commit these).
# - `.env.local` is convenient for local dev.
# - `.env` is the default for docker-compose variable substitution.
load_dotenv(dotenv_path=".env.local", override=False)
load_dotenv(dotenv_path=".env", override=False)

# Environment name (used for warnings/behavior toggles)
ENV = os.getenv("ENV", "development")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# The single credential for the external completion API
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

# OpenAI-compatible chat completions endpoint
OPENAI_API_URL = os.getenv("OPENAI_API_URL", "https://api.openai.com/v1/chat/completions")

# Fixed model selection and sampling limits for every exchange
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4")
CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
CHAT_MAX_TOKENS = int(os.getenv("CHAT_MAX_TOKENS", "500"))

# Upper bound on a single upstream call; matches the hosted SDK's own default.
OPENAI_TIMEOUT_SECONDS = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "600"))

# Where the client manager reaches the proxy endpoint
PASTORAI_API_URL = os.getenv("PASTORAI_API_URL", "http://localhost:8001")


def client_timeout_seconds() -> float | None:
    value = os.getenv("PASTORAI_CLIENT_TIMEOUT_SECONDS")
    if not value:
        return None
    try:
        return float(value)
    except Exception:
        return None


def _parse_csv_list(value: str | None) -> list[str] | None:
    if not value:
        return None
    items = [v.strip() for v in value.split(",")]
    items = [v for v in items if v]
    return items or None


def cors_allow_origins() -> list[str]:
    origins = _parse_csv_list(os.getenv("CORS_ALLOW_ORIGINS"))
    if origins:
        return origins
    if ENV == "development":
        return ["*"]
    return ["http://localhost:3000"]
