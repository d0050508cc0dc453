"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ── Envelope ──────────────────────────────
    DOCUMENT_ORDINAL: str = "1"

    # ── Patch request ─────────────────────────
    UPDATE_NAME_SUFFIX: str = " [UPDATED]"
    DEFAULT_FILENAME_STEM: str = "document"

    # ── Session store keys ────────────────────
    ENVELOPE_STORE_KEY: str = "nmdMessage"
    PAYLOAD_STORE_KEY: str = "patchRequest"
    ETAG_STORE_KEY: str = "currentETag"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
