import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")


def _optional_number(name: str, cast):
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    return cast(raw)


class Config:
    """Base configuration shared across environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me")
    WTF_CSRF_TIME_LIMIT = None
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "").strip()
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-3.5-turbo").strip()
    OPENAI_EMBEDDING_MODEL = os.environ.get("OPENAI_EMBEDDING_MODEL", "text-embedding-ada-002").strip()
    OPENAI_TIMEOUT = _optional_number("OPENAI_TIMEOUT", float)

    # Conservative budget so the prompt and the JSON answer fit the context window.
    EXTRACTION_MAX_TOKENS = int(os.environ.get("EXTRACTION_MAX_TOKENS", 12000))
    EXTRACTION_MAX_WORKERS = _optional_number("EXTRACTION_MAX_WORKERS", int)

    PROMPT_CONFIG_PATH = os.environ.get("PROMPT_CONFIG_PATH") or None
    SAMPLE_DOCUMENT_PATH = os.environ.get("SAMPLE_DOCUMENT_PATH", str(Path(__file__).resolve().parent / "sample.txt"))


class TestConfig(Config):
    TESTING = True
    OPENAI_API_KEY = "sk-test-key"
    PROMPT_CONFIG_PATH = None
    SAMPLE_DOCUMENT_PATH = None
