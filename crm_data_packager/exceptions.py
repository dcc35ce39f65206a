"""Exceptions for CRM Data Packager.

All fatal conditions inherit from PackagerException. Recoverable
conditions (file name collisions, missing optional references) are
logged, never raised.
"""


class PackagerException(Exception):
    """Base exception for extract and pack runs."""

    pass


class FatalIOError(PackagerException):
    """Raised when a required document, folder, archive or settings file cannot be used."""

    pass


class DataFileNotFoundError(FatalIOError):
    """Raised when a required file or folder does not exist."""

    def __init__(self, path, reason: str = "not found"):
        """Initialize with the missing path.

        Args:
            path: Path that was expected to exist
            reason: Human-readable explanation
        """
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class DocumentParseError(FatalIOError):
    """Raised when an XML document is malformed."""

    def __init__(self, path, detail: str):
        self.path = str(path)
        super().__init__(f"Could not parse {self.path}: {detail}")


class SettingsFileError(FatalIOError):
    """Raised when a settings file is unreadable or invalid."""

    pass


class VersionIncompatibleError(PackagerException):
    """Raised when a settings file was written by an incompatible tool version."""

    def __init__(self, settings_version, tool_version: str):
        self.settings_version = settings_version
        self.tool_version = tool_version
        super().__init__(
            f"The extracted data folder was created with an incompatible version of "
            f"CRM Data Packager ({settings_version}). To create a folder compatible with this "
            f"version ({tool_version}), pack the folder with the version that extracted it and "
            f"then extract the data file again with this version."
        )
