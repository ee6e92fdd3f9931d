"""Settings storage for bacilint."""

import json
import os
import tempfile
from pathlib import Path

from .errors import (
    InvalidSchemaVersionError,
    InvalidSettingsError,
    SettingsExistsError,
    SettingsNotFoundError,
)
from .models import Settings

SCHEMA_VERSION = 1

# Can be overridden via BACILINT_DATA_DIR environment variable
_default_data_dir = Path.home() / ".bacilint"
SETTINGS_FILE = "settings.json"


def default_data_dir() -> Path:
    return Path(os.environ.get("BACILINT_DATA_DIR", _default_data_dir))


class SettingsStore:
    """Manages reading and writing the host settings file."""

    def __init__(self, config_dir: Path | None = None):
        """
        Initialize SettingsStore.

        Args:
            config_dir: Override settings directory (for testing).
        """
        self.config_dir = Path(config_dir) if config_dir is not None else default_data_dir()
        self.config_path = self.config_dir / SETTINGS_FILE

    def exists(self) -> bool:
        """Check if settings file exists."""
        return self.config_path.exists()

    def load(self) -> Settings:
        """
        Load settings from disk.

        Raises:
            SettingsNotFoundError: If settings don't exist.
            InvalidSchemaVersionError: If schema version is unsupported.
            InvalidSettingsError: If a value is out of range.
        """
        if not self.exists():
            raise SettingsNotFoundError(str(self.config_path))

        with open(self.config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        version = data.get("schema_version", 0)
        if version != SCHEMA_VERSION:
            raise InvalidSchemaVersionError(version, SCHEMA_VERSION)

        return Settings.from_dict(data.get("settings", {}))

    def load_or_default(self) -> Settings:
        """Load settings, falling back to defaults when none were saved."""
        if not self.exists():
            return Settings()
        return self.load()

    def save(self, settings: Settings) -> None:
        """
        Save settings to disk atomically.

        Uses write-to-temp-then-rename for atomicity.
        """
        settings.validate()
        self.config_dir.mkdir(parents=True, exist_ok=True)

        data = {"schema_version": SCHEMA_VERSION, "settings": settings.to_dict()}
        fd, temp_path = tempfile.mkstemp(
            dir=self.config_dir, prefix=".settings_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")  # trailing newline
            os.replace(temp_path, self.config_path)
        except Exception:
            # Clean up temp file on failure (ignore errors if already removed)
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def init(self, force: bool = False) -> Settings:
        """
        Write default settings.

        Raises:
            SettingsExistsError: If settings exist and force=False.
        """
        if self.exists() and not force:
            raise SettingsExistsError(str(self.config_path))

        settings = Settings()
        self.save(settings)
        return settings

    def update(self, values: dict) -> Settings:
        """
        Merge host-style keys (e.g. "format.indentSize") into the saved settings.

        Raises:
            InvalidSettingsError: If the merged settings are invalid.
        """
        current = self.load_or_default().to_dict()
        for key, value in values.items():
            if key not in current:
                raise InvalidSettingsError(key, value, "unknown setting")
        current.update(values)
        settings = Settings.from_dict(current)
        self.save(settings)
        return settings
