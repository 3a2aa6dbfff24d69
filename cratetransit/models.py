"""Core data models for crate-transit."""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Generic, Iterator, TypeVar

import semantic_version

from .errors import ManifestConsumedError
from .features import FeatureSpec
from .versions import VersionReq

Name = TypeVar("Name")
Feature = TypeVar("Feature")


class DependencyKind(Enum):
    """Manifest section a dependency was declared in."""

    NORMAL = "normal"
    DEV = "dev"
    BUILD = "build"

    @property
    def rank(self) -> int:
        """Position of this kind in the dependency ordering."""
        return _KIND_ORDER.index(self)


_KIND_ORDER = (DependencyKind.NORMAL, DependencyKind.DEV, DependencyKind.BUILD)


@dataclass
class Dependency(Generic[Feature]):
    """A single entry of one of the manifest's dependency tables."""

    version: VersionReq
    registry_index: str | None = None
    features: list[Feature] | None = None
    optional: bool | None = None
    public: bool | None = None
    default_features: bool | None = None
    package: str | None = None  # real crate name when the key is a rename
    target: str | None = None  # platform, e.g. x86_64-apple-darwin

    def to_dict(self) -> dict:
        data: dict = {"version": str(self.version)}
        for key, value in (
            ("registry-index", self.registry_index),
            ("features", self.features),
            ("optional", self.optional),
            ("public", self.public),
            ("default-features", self.default_features),
            ("package", self.package),
            ("target", self.target),
        ):
            if value is not None:
                data[key] = list(value) if key == "features" else value
        return data


@dataclass
class Package(Generic[Name]):
    """The ``[package]`` table of a manifest.

    Field order is the order used by ``to_dict``; table-valued fields must
    come last when the result is written back out as TOML.
    """

    name: Name
    version: semantic_version.Version
    rust_version: str | None = None
    links: str | None = None
    authors: list[str] | None = None
    description: str | None = None
    homepage: str | None = None
    documentation: str | None = None
    readme: str | bool | None = None
    keywords: list[str] | None = None
    categories: list[str] | None = None
    license: str | None = None
    license_file: str | None = None
    repository: str | None = None

    def to_dict(self) -> dict:
        data: dict = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name == "version":
                value = str(value)
            data[f.name.replace("_", "-")] = value
        return data


@dataclass
class Manifest(Generic[Name, Feature]):
    """A parsed manifest, limited to what publishing and indexing need."""

    package: Package[Name]
    dependencies: dict[str, Dependency[Feature]] | None = None
    dev_dependencies: dict[str, Dependency[Feature]] | None = None
    build_dependencies: dict[str, Dependency[Feature]] | None = None
    features: dict[Feature, list[FeatureSpec]] | None = None
    _consumed: bool = field(default=False, init=False, repr=False, compare=False)

    @property
    def consumed(self) -> bool:
        return self._consumed

    def take_dependencies(self) -> Iterator[tuple[str, Dependency[Feature], DependencyKind]]:
        """Move all dependency sections out of the manifest.

        Yields (name in manifest, dependency, kind) for normal, then dev, then
        build dependencies, each section in manifest order. The manifest gives
        up its dependencies in the process and cannot be drained twice.

        Raises:
            ManifestConsumedError: If dependencies were already taken
        """
        if self._consumed:
            raise ManifestConsumedError(
                f"dependencies of {self.package.name} were already taken"
            )

        sections = (
            (self.dependencies, DependencyKind.NORMAL),
            (self.dev_dependencies, DependencyKind.DEV),
            (self.build_dependencies, DependencyKind.BUILD),
        )
        self.dependencies = self.dev_dependencies = self.build_dependencies = None
        self._consumed = True

        return (
            (name_in_toml, dependency, kind)
            for section, kind in sections
            for name_in_toml, dependency in (section or {}).items()
        )

    def to_dict(self) -> dict:
        """Mapping in the manifest's own layout, tables after the package."""
        if self._consumed:
            raise ManifestConsumedError(
                f"dependencies of {self.package.name} were already taken"
            )

        data: dict = {"package": self.package.to_dict()}
        for key, section in (
            ("dependencies", self.dependencies),
            ("dev-dependencies", self.dev_dependencies),
            ("build-dependencies", self.build_dependencies),
        ):
            if section is not None:
                data[key] = {name: dep.to_dict() for name, dep in section.items()}
        if self.features is not None:
            data["features"] = {
                name: [str(spec) for spec in specs] for name, specs in self.features.items()
            }
        return data
