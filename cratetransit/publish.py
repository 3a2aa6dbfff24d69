"""Publish payload: the JSON body a registry receives on upload."""

import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import semantic_version

from .errors import ManifestFormatError
from .features import FeatureSpec, format_features, freeze_features, parse_feature_specs
from .models import DependencyKind, Manifest
from .versions import VersionReq, parse_version

logger = logging.getLogger(__name__)

CRATES_IO_INDEX = "https://github.com/rust-lang/crates.io-index"


@dataclass(frozen=True)
class PublishDependency:
    """A dependency as sent to the registry's publish API."""

    name: str
    requirements: VersionReq
    features: tuple[str, ...] = ()
    optional: bool = False
    default_features: bool = True
    target: str | None = None
    kind: DependencyKind = DependencyKind.NORMAL
    registry: str | None = None
    explicit_name_in_toml: str | None = None

    def to_dict(self) -> dict:
        data = {
            "name": self.name,
            "version_req": str(self.requirements),
            "features": list(self.features),
            "optional": self.optional,
            "default_features": self.default_features,
            "target": self.target,
            "kind": self.kind.value,
        }
        if self.registry is not None:
            data["registry"] = self.registry
        if self.explicit_name_in_toml is not None:
            data["explicit_name_in_toml"] = self.explicit_name_in_toml
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PublishDependency":
        try:
            return cls(
                name=data["name"],
                requirements=VersionReq.parse(data["version_req"]),
                features=tuple(data.get("features") or ()),
                optional=data.get("optional", False),
                default_features=data.get("default_features", True),
                target=data.get("target"),
                kind=DependencyKind(data.get("kind", "normal")),
                registry=data.get("registry"),
                explicit_name_in_toml=data.get("explicit_name_in_toml"),
            )
        except KeyError as e:
            raise ManifestFormatError(f"publish dependency: missing field {e.args[0]!r}") from e
        except ValueError as e:
            if isinstance(e, ManifestFormatError):
                raise
            raise ManifestFormatError(f"publish dependency: {e}") from e


@dataclass(frozen=True)
class PublishPayload:
    """Everything the registry needs to know about one new version."""

    name: str
    version: semantic_version.Version
    dependencies: tuple[PublishDependency, ...] = ()
    features: Mapping[str, tuple[FeatureSpec, ...]] = field(default_factory=dict)
    authors: tuple[str, ...] = ()
    description: str | None = None
    documentation: str | None = None
    homepage: str | None = None
    readme: str | None = None
    readme_file: str | None = None
    keywords: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    license: str | None = None
    license_file: str | None = None
    repository: str | None = None
    links: str | None = None
    badges: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Maps are stored as read-only copies
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        object.__setattr__(self, "features", freeze_features(self.features))
        object.__setattr__(self, "badges", MappingProxyType(dict(self.badges)))

    @classmethod
    def from_manifest(
        cls,
        manifest: Manifest,
        is_for: str,
        readme: str | None = None,
        readme_file: str | None = None,
    ) -> "PublishPayload":
        """Build the payload for publishing ``manifest`` to registry ``is_for``.

        The manifest's dependencies are taken in the process, so a manifest
        can only be turned into one payload.

        Args:
            manifest: Parsed manifest, consumed by this call
            is_for: Index URL of the registry the payload is built for
            readme: README contents, already read by the caller
            readme_file: Path of the README inside the package

        Returns:
            The publish payload
        """
        dependencies = tuple(
            _publish_dependency(name_in_toml, dependency, kind, is_for)
            for name_in_toml, dependency, kind in manifest.take_dependencies()
        )
        package = manifest.package
        logger.debug(
            "Built publish payload for %s %s with %d dependencies",
            package.name,
            package.version,
            len(dependencies),
        )

        return cls(
            name=str(package.name),
            version=package.version,
            dependencies=dependencies,
            features={
                str(name): list(specs)
                for name, specs in sorted((manifest.features or {}).items())
            },
            authors=tuple(package.authors or ()),
            description=package.description,
            documentation=package.documentation,
            homepage=package.homepage,
            readme=readme,
            readme_file=readme_file,
            keywords=tuple(package.keywords or ()),
            categories=tuple(package.categories or ()),
            license=package.license,
            license_file=package.license_file,
            repository=package.repository,
            links=package.links,
        )

    def to_dict(self) -> dict:
        data = {
            "name": self.name,
            "vers": str(self.version),
            "deps": [dep.to_dict() for dep in self.dependencies],
            "features": format_features(self.features),
            "authors": list(self.authors),
            "description": self.description,
            "documentation": self.documentation,
            "homepage": self.homepage,
            "readme": self.readme,
            "readme_file": self.readme_file,
            "keywords": list(self.keywords),
            "categories": list(self.categories),
            "license": self.license,
            "license_file": self.license_file,
            "repository": self.repository,
        }
        if self.links is not None:
            data["links"] = self.links
        data["badges"] = dict(self.badges)
        return data

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PublishPayload":
        """Read a payload back from its wire form."""
        for key in ("name", "vers"):
            if key not in data:
                raise ManifestFormatError(f"publish payload: missing field {key!r}")

        return cls(
            name=data["name"],
            version=parse_version(data["vers"]),
            dependencies=tuple(PublishDependency.from_dict(dep) for dep in data.get("deps") or ()),
            features={
                name: parse_feature_specs(specs)
                for name, specs in sorted((data.get("features") or {}).items())
            },
            authors=tuple(data.get("authors") or ()),
            description=data.get("description"),
            documentation=data.get("documentation"),
            homepage=data.get("homepage"),
            readme=data.get("readme"),
            readme_file=data.get("readme_file"),
            keywords=tuple(data.get("keywords") or ()),
            categories=tuple(data.get("categories") or ()),
            license=data.get("license"),
            license_file=data.get("license_file"),
            repository=data.get("repository"),
            links=data.get("links"),
            badges=dict(data.get("badges") or {}),
        )

    @classmethod
    def from_json(cls, text: str) -> "PublishPayload":
        return cls.from_dict(json.loads(text))


def _publish_dependency(name_in_toml, dependency, kind: DependencyKind, is_for: str) -> PublishDependency:
    if dependency.package is not None:
        # `alias = { package = "real-name" }`
        name, explicit_name = dependency.package, str(name_in_toml)
    else:
        name, explicit_name = str(name_in_toml), None

    is_from = dependency.registry_index if dependency.registry_index is not None else CRATES_IO_INDEX
    # Plain string comparison; differently spelled URLs for one registry are not unified
    registry = None if is_from == is_for else is_from

    optional = bool(dependency.optional)
    if optional and kind is not DependencyKind.NORMAL:
        logger.warning("Ignoring optional = true on %s dependency %r", kind.value, name_in_toml)
        optional = False

    return PublishDependency(
        name=name,
        requirements=dependency.version,
        features=tuple(str(feature) for feature in dependency.features or ()),
        optional=optional,
        default_features=dependency.default_features is not False,
        target=dependency.target,
        kind=kind,
        registry=registry,
        explicit_name_in_toml=explicit_name,
    )
