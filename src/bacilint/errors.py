"""Custom exceptions for bacilint.

Source text never raises: rule breaches are reported as diagnostics. These
exceptions belong to the host layer (settings, documents, lifecycle).
"""


class BacilintError(Exception):
    """Base exception for all bacilint errors."""

    pass


class SettingsNotFoundError(BacilintError):
    """Raised when settings.json doesn't exist."""

    def __init__(self, path: str | None = None):
        self.path = path
        msg = "Settings not initialized. Run 'bacilint settings init' first."
        if path:
            msg = f"Settings not found at {path}. Run 'bacilint settings init' first."
        super().__init__(msg)


class SettingsExistsError(BacilintError):
    """Raised when trying to init but settings already exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Settings already exist at {path}. Use --force to overwrite.")


class InvalidSchemaVersionError(BacilintError):
    """Raised when settings have an unsupported schema version."""

    def __init__(self, found: int, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Unsupported schema version {found}. This tool supports version {supported}."
        )


class InvalidSettingsError(BacilintError):
    """Raised when a settings value is out of range or of the wrong type."""

    def __init__(self, key: str, value: object, reason: str):
        self.key = key
        self.value = value
        super().__init__(f"Invalid setting {key}={value!r}: {reason}")


class DocumentNotFoundError(BacilintError):
    """Raised when a document URI is not open in the host."""

    def __init__(self, uri: str):
        self.uri = uri
        super().__init__(f"Document not open: {uri}")


class HostNotInitializedError(BacilintError):
    """Raised when the host is used before initialize() or after shutdown()."""

    def __init__(self):
        super().__init__("Language host is not initialized")


class SourceFileError(BacilintError):
    """Raised when a source file can't be read or written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Cannot access {path}: {reason}")
