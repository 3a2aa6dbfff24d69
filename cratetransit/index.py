"""Index entries: one JSON line per published version in the registry index."""

import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import semantic_version

from .errors import ChecksumFormatError, ManifestFormatError
from .features import (
    FeatureSpec,
    format_features,
    freeze_features,
    parse_feature_specs,
    partition_features,
)
from .models import DependencyKind, Manifest
from .publish import PublishPayload
from .versions import VersionReq, parse_version

logger = logging.getLogger(__name__)

CHECKSUM_SIZE = 32
EXTENDED_SCHEMA_VERSION = 2


def _checked_checksum(checksum: bytes) -> bytes:
    if not isinstance(checksum, (bytes, bytearray)):
        raise ChecksumFormatError(f"checksum must be bytes, not {type(checksum).__name__}")
    if len(checksum) != CHECKSUM_SIZE:
        raise ChecksumFormatError(f"checksum must be {CHECKSUM_SIZE} bytes, got {len(checksum)}")
    return bytes(checksum)


def checksum_from_hex(text: str) -> bytes:
    """Decode a hex digest as found in the ``cksum`` field."""
    try:
        return _checked_checksum(bytes.fromhex(text))
    except (TypeError, ValueError) as e:
        if isinstance(e, ChecksumFormatError):
            raise
        raise ChecksumFormatError(f"invalid checksum {text!r}: {e}") from e


@dataclass(frozen=True)
class IndexDependency:
    """A dependency as recorded in the index.

    ``name`` is the name the dependent uses; when that is a rename,
    ``package`` holds the real crate name.
    """

    name: str
    requirements: VersionReq
    kind: DependencyKind | None = None
    features: tuple[str, ...] = ()
    optional: bool = False
    default_features: bool = True
    target: str | None = None
    registry: str | None = None
    package: str | None = None
    public: bool | None = None

    def to_dict(self) -> dict:
        data: dict = {"name": self.name}
        if self.kind is not None:
            data["kind"] = self.kind.value
        data["req"] = str(self.requirements)
        data["features"] = list(self.features)
        data["optional"] = self.optional
        data["default_features"] = self.default_features
        for key in ("target", "registry", "package", "public"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IndexDependency":
        try:
            kind = data.get("kind")
            return cls(
                name=data["name"],
                requirements=VersionReq.parse(data["req"]),
                kind=DependencyKind(kind) if kind is not None else None,
                features=tuple(data.get("features") or ()),
                optional=data.get("optional", False),
                default_features=data.get("default_features", True),
                target=data.get("target"),
                registry=data.get("registry"),
                package=data.get("package"),
                public=data.get("public"),
            )
        except KeyError as e:
            raise ManifestFormatError(f"index dependency: missing field {e.args[0]!r}") from e
        except ValueError as e:
            if isinstance(e, ManifestFormatError):
                raise
            raise ManifestFormatError(f"index dependency: {e}") from e


def _kind_rank(dependency: IndexDependency) -> int:
    return (dependency.kind or DependencyKind.NORMAL).rank


@dataclass(frozen=True)
class IndexEntry:
    """A single line of the index describing one version of a package."""

    name: str
    version: semantic_version.Version
    checksum: bytes
    dependencies: tuple[IndexDependency, ...] = ()
    features: Mapping[str, tuple[FeatureSpec, ...]] = field(default_factory=dict)
    # Only features using `dep:` or `pkg?/feat`; None unless schema_version is 2
    features2: Mapping[str, tuple[FeatureSpec, ...]] | None = None
    yanked: bool = False
    links: str | None = None
    schema_version: int | None = None

    def __post_init__(self):
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        object.__setattr__(self, "features", freeze_features(self.features))
        if self.features2 is not None:
            object.__setattr__(self, "features2", freeze_features(self.features2))

    @classmethod
    def from_publish(cls, payload: PublishPayload, checksum: bytes) -> "IndexEntry":
        """Build the index entry for a payload.

        Args:
            payload: The payload the version was published with
            checksum: SHA-256 digest of the ``.crate`` file, computed by the caller

        Returns:
            The index entry, never yanked
        """
        checksum = _checked_checksum(checksum)
        features, features2 = partition_features(payload.features)

        dependencies = []
        for dep in payload.dependencies:
            if dep.explicit_name_in_toml is not None:
                name, package = dep.explicit_name_in_toml, dep.name
            else:
                name, package = dep.name, None
            dependencies.append(
                IndexDependency(
                    name=name,
                    requirements=dep.requirements,
                    kind=dep.kind,
                    features=dep.features,
                    optional=dep.optional and dep.kind is DependencyKind.NORMAL,
                    default_features=dep.default_features,
                    target=dep.target,
                    registry=dep.registry,
                    package=package,
                )
            )
        # Old index readers resolve same-named duplicates by position and can
        # misread `optional` unless the normal entry comes first
        dependencies.sort(key=_kind_rank)

        logger.debug(
            "Built index entry for %s %s (schema version %s)",
            payload.name,
            payload.version,
            EXTENDED_SCHEMA_VERSION if features2 else 1,
        )

        return cls(
            name=payload.name,
            version=payload.version,
            checksum=checksum,
            dependencies=tuple(dependencies),
            features=features,
            features2=features2 or None,
            yanked=False,
            links=payload.links,
            schema_version=EXTENDED_SCHEMA_VERSION if features2 else None,
        )

    @classmethod
    def from_manifest(cls, manifest: Manifest, via_registry: str, checksum: bytes) -> "IndexEntry":
        """Build the index entry straight from a manifest, consuming it."""
        payload = PublishPayload.from_manifest(manifest, via_registry)
        return cls.from_publish(payload, checksum)

    @property
    def checksum_hex(self) -> str:
        return self.checksum.hex()

    def to_dict(self) -> dict:
        data: dict = {
            "name": self.name,
            "vers": str(self.version),
            "deps": [dep.to_dict() for dep in self.dependencies],
            "features": format_features(self.features),
        }
        if self.features2 is not None:
            data["features2"] = format_features(self.features2)
        data["cksum"] = self.checksum_hex
        data["yanked"] = self.yanked
        if self.links is not None:
            data["links"] = self.links
        if self.schema_version is not None:
            data["v"] = self.schema_version
        return data

    def to_json(self) -> str:
        """Compact single-line JSON, as stored in the index file."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IndexEntry":
        """Read an entry back from an index line already decoded from JSON."""
        for key in ("name", "vers", "cksum"):
            if key not in data:
                raise ManifestFormatError(f"index entry: missing field {key!r}")

        features2 = data.get("features2")
        return cls(
            name=data["name"],
            version=parse_version(data["vers"]),
            checksum=checksum_from_hex(data["cksum"]),
            dependencies=tuple(IndexDependency.from_dict(dep) for dep in data.get("deps") or ()),
            features={
                name: parse_feature_specs(specs)
                for name, specs in (data.get("features") or {}).items()
            },
            features2=(
                {name: parse_feature_specs(specs) for name, specs in features2.items()}
                if features2 is not None
                else None
            ),
            yanked=data.get("yanked", False),
            links=data.get("links"),
            schema_version=data.get("v"),
        )

    @classmethod
    def from_json(cls, line: str) -> "IndexEntry":
        return cls.from_dict(json.loads(line))
