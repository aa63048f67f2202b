import os
import sys

from pydantic import BaseModel, Field

from .conversion.adapters import SCRIPT_DIR


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    # Limits
    MAX_BYTES: int = Field(default_factory=lambda: int(os.getenv("MAX_DOCX_BYTES", str(15 * 1024 * 1024))), gt=0)
    CONCURRENCY: int = Field(default_factory=lambda: int(os.getenv("DOCX2PDF_CONCURRENCY", "2")), ge=1)
    TIMEOUT_MS: int = Field(default_factory=lambda: int(os.getenv("DOCX2PDF_TIMEOUT_MS", "60000")), gt=0)

    # Workspaces live under the system temp dir unless overridden
    WORK_DIR: str | None = Field(default_factory=lambda: os.getenv("DOCX2PDF_WORK_DIR") or None)

    # Backend selection
    PLATFORM: str = Field(default_factory=lambda: os.getenv("DOCX2PDF_PLATFORM", sys.platform))
    UNOCONV_BIN: str = Field(default_factory=lambda: os.getenv("DOCX2PDF_UNOCONV_BIN", "unoconv"))
    SCRIPT_DIR: str = Field(default_factory=lambda: os.getenv("DOCX2PDF_SCRIPT_DIR", SCRIPT_DIR))

    # Server
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    HOST: str = Field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    PORT: int = Field(default_factory=lambda: int(os.getenv("PORT", "3000")))
    RELOAD: bool = Field(default_factory=lambda: _env_bool("RELOAD", "false"))


def get_settings() -> Settings:
    return Settings()
