"""
Application paths for the quotation system.
Everything lives under one per-user data directory from platformdirs, unless
a base directory is given (tests, portable installs, --data-dir).
"""

from pathlib import Path
from typing import Optional

from platformdirs import user_data_dir


class AppPaths:
    """Centralized path management for the application."""

    APP_NAME = "TileQuote"
    APP_AUTHOR = "PrateekTiles"

    def __init__(self, base_dir: Optional[Path] = None):
        self._base_dir = Path(base_dir) if base_dir else None

    @property
    def data_dir(self) -> Path:
        data_path = self._base_dir or Path(user_data_dir(self.APP_NAME, self.APP_AUTHOR))
        data_path.mkdir(parents=True, exist_ok=True)
        return data_path

    def _subdir(self, name: str) -> Path:
        path = self.data_dir / name
        path.mkdir(exist_ok=True)
        return path

    @property
    def database_path(self) -> Path:
        """SQLite database file path."""
        return self._subdir("data") / "app.db"

    @property
    def logs_dir(self) -> Path:
        return self._subdir("logs")

    @property
    def exports_dir(self) -> Path:
        """Default directory for exported quotation PDFs."""
        return self._subdir("exports")

    @property
    def media_dir(self) -> Path:
        """Uploaded logos and product images; stored paths are relative to it."""
        return self._subdir("media")

    @property
    def backup_dir(self) -> Path:
        return self._subdir("backup_migration")

    def get_absolute_media_path(self, stored_path: str) -> Optional[Path]:
        """Resolve a stored media path; absolute paths are returned unchanged."""
        if not stored_path:
            return None
        path = Path(stored_path)
        if path.is_absolute():
            return path
        return self.media_dir / path


# Global instance
app_paths = AppPaths()
