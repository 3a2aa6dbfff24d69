"""Exceptions raised while building publish payloads and index entries."""


class TransitError(Exception):
    """Base class for all crate-transit errors."""


class ManifestFormatError(TransitError, ValueError):
    """The manifest mapping does not have the expected structure."""


class VersionFormatError(ManifestFormatError):
    """A version string does not parse as a semantic version."""

    def __init__(self, raw: str, reason: str | None = None):
        self.raw = raw
        message = f"invalid version {raw!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class RequirementFormatError(ManifestFormatError):
    """A version requirement string is malformed."""

    def __init__(self, raw: str, reason: str | None = None):
        self.raw = raw
        message = f"invalid version requirement {raw!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ChecksumFormatError(TransitError, ValueError):
    """A checksum is not a 32-byte digest."""


class ManifestConsumedError(TransitError, RuntimeError):
    """Dependencies were already taken out of this manifest."""
