"""Semantic versions and Cargo-style version requirements."""

import re

import semantic_version

from .errors import RequirementFormatError, VersionFormatError

_COMPARATOR = re.compile(
    r"^(?P<op>>=|<=|=|>|<|~|\^)?\s*"
    r"(?P<version>(?:\*|[xX]|\d+)(?:\.(?:\*|[xX]|\d+)){0,2}"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)$"
)


def parse_version(raw: str) -> semantic_version.Version:
    """Parse a package version, ignoring surrounding whitespace.

    Args:
        raw: Version string as written in the manifest

    Returns:
        Parsed semantic version

    Raises:
        VersionFormatError: If the trimmed string is not a full semantic version
    """
    if not isinstance(raw, str):
        raise VersionFormatError(repr(raw), "expected a string")
    try:
        return semantic_version.Version(raw.strip())
    except ValueError as e:
        raise VersionFormatError(raw, str(e)) from e


def _is_wildcard(version: str) -> bool:
    return any(part in ("*", "x", "X") for part in version.split("."))


class VersionReq:
    """A parsed version requirement such as ``^1.2``, ``>=1, <2`` or ``1.*``.

    The requirement keeps Cargo's textual form for serialization. Validation is
    left to ``semantic_version.NpmSpec``, whose caret, tilde and x-range syntax
    agrees with Cargo's once a bare version is read as a caret.
    """

    def __init__(self, comparators: tuple[str, ...]):
        self.comparators = comparators

    @classmethod
    def parse(cls, raw: str) -> "VersionReq":
        if not isinstance(raw, str):
            raise RequirementFormatError(repr(raw), "expected a string")

        comparators = []
        for part in raw.split(","):
            match = _COMPARATOR.match(part.strip())
            if not match:
                raise RequirementFormatError(raw, f"unexpected comparator {part.strip()!r}")
            op, version = match.group("op"), match.group("version")
            if op is None and not _is_wildcard(version):
                # A bare version means "compatible with", the same as a caret
                op = "^"
            comparators.append(f"{op or ''}{version}")

        try:
            semantic_version.NpmSpec(" ".join(comparators))
        except ValueError as e:
            raise RequirementFormatError(raw, str(e)) from e

        return cls(tuple(comparators))

    def __str__(self) -> str:
        return ", ".join(self.comparators)

    def __repr__(self) -> str:
        return f"VersionReq({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionReq):
            return NotImplemented
        return self.comparators == other.comparators

    def __hash__(self) -> int:
        return hash(self.comparators)
