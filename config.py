from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

APP_DIR = Path.home() / ".book_inventory"


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # Application
    app_name: str = os.getenv("APP_NAME", "Book Inventory Management System")
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Storage
    data_dir: Path = field(
        default_factory=lambda: Path(os.getenv("BOOK_INVENTORY_HOME", str(APP_DIR)))
    )
    storage_slot: str = os.getenv("STORAGE_SLOT", "books")

    # Recent books catalog
    recent_books_url: str = os.getenv("RECENT_BOOKS_URL", "https://www.dbooks.org/api/recent")
    recent_books_timeout: float = float(os.getenv("RECENT_BOOKS_TIMEOUT", "15"))
    fetch_on_startup: bool = _flag("FETCH_ON_STARTUP", "True")

    # Records and uploads
    max_image_bytes: int = int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))
    placeholder_image: str = os.getenv("PLACEHOLDER_IMAGE", "https://placeholder.com/150")

    @property
    def database_path(self) -> Path:
        return Path(self.data_dir) / "storage.db"


settings = Settings()
