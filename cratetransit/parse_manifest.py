"""Cargo.toml parsing into the manifest model."""

import logging
import tomllib
from typing import Any, Mapping

from .errors import ManifestFormatError
from .features import parse_feature_specs
from .models import Dependency, Manifest, Package
from .versions import VersionReq, parse_version

logger = logging.getLogger(__name__)

# Canonical key, followed by the historical spelling accepted for it
SECTION_ALIASES = {
    "dependencies": ("dependencies",),
    "dev-dependencies": ("dev-dependencies", "dev_dependencies"),
    "build-dependencies": ("build-dependencies", "build_dependencies"),
}

_STRING_FIELDS = (
    "rust-version",
    "links",
    "description",
    "homepage",
    "documentation",
    "license",
    "license-file",
    "repository",
)
_LIST_FIELDS = ("authors", "keywords", "categories")


def _aliased(table: Mapping[str, Any], *keys: str) -> Any:
    """Value of whichever spelling is present; later keys are historical aliases.

    Raises:
        ManifestFormatError: If more than one spelling is present
    """
    present = [key for key in keys if key in table]
    if len(present) > 1:
        raise ManifestFormatError(f"duplicate field: both {' and '.join(map(repr, present))} given")
    return table[present[0]] if present else None


def _expect(value: Any, kind: type | tuple[type, ...], where: str) -> Any:
    if value is not None and not isinstance(value, kind):
        raise ManifestFormatError(f"{where}: unexpected value {value!r}")
    return value


def _expect_strings(value: Any, where: str) -> list[str] | None:
    _expect(value, list, where)
    if value is not None and not all(isinstance(item, str) for item in value):
        raise ManifestFormatError(f"{where}: expected a list of strings")
    return value


class ManifestParser:
    """Builds a ``Manifest`` from a parsed TOML document."""

    def _parse_package(self, table: Any) -> Package[str]:
        if not isinstance(table, dict):
            raise ManifestFormatError("missing [package] table")
        if "name" not in table:
            raise ManifestFormatError("package: missing field 'name'")
        if "version" not in table:
            raise ManifestFormatError("package: missing field 'version'")

        name = _expect(table["name"], str, "package.name")
        values: dict[str, Any] = {}
        for key in _STRING_FIELDS:
            values[key.replace("-", "_")] = _expect(table.get(key), str, f"package.{key}")
        for key in _LIST_FIELDS:
            values[key] = _expect_strings(table.get(key), f"package.{key}")
        values["readme"] = _expect(table.get("readme"), (str, bool), "package.readme")

        return Package(name=name, version=parse_version(table["version"]), **values)

    def _parse_dependency(self, name: str, value: Any, where: str) -> Dependency[str]:
        # `serde = "1.0"` is shorthand for `serde = { version = "1.0" }`
        if isinstance(value, str):
            return Dependency(version=VersionReq.parse(value))
        if not isinstance(value, dict):
            raise ManifestFormatError(f"{where}.{name}: expected a string or a table")
        if "version" not in value:
            raise ManifestFormatError(f"{where}.{name}: missing field 'version'")

        return Dependency(
            version=VersionReq.parse(value["version"]),
            registry_index=_expect(value.get("registry-index"), str, f"{where}.{name}.registry-index"),
            features=_expect_strings(value.get("features"), f"{where}.{name}.features"),
            optional=_expect(value.get("optional"), bool, f"{where}.{name}.optional"),
            public=_expect(value.get("public"), bool, f"{where}.{name}.public"),
            default_features=_expect(
                _aliased(value, "default-features", "default_features"),
                bool,
                f"{where}.{name}.default-features",
            ),
            package=_expect(value.get("package"), str, f"{where}.{name}.package"),
            target=_expect(value.get("target"), str, f"{where}.{name}.target"),
        )

    def _parse_section(self, data: Mapping[str, Any], key: str) -> dict[str, Dependency[str]] | None:
        table = _aliased(data, *SECTION_ALIASES[key])
        if table is None:
            return None
        _expect(table, dict, key)
        return {name: self._parse_dependency(name, value, key) for name, value in table.items()}

    def _parse_features(self, table: Any) -> dict | None:
        if table is None:
            return None
        _expect(table, dict, "features")
        return {
            name: parse_feature_specs(_expect_strings(specs, f"features.{name}") or [])
            for name, specs in table.items()
        }

    def from_dict(self, data: Mapping[str, Any]) -> Manifest[str, str]:
        """Build a manifest from an already parsed document."""
        manifest = Manifest(
            package=self._parse_package(data.get("package")),
            dependencies=self._parse_section(data, "dependencies"),
            dev_dependencies=self._parse_section(data, "dev-dependencies"),
            build_dependencies=self._parse_section(data, "build-dependencies"),
            features=self._parse_features(data.get("features")),
        )
        logger.debug("Parsed manifest for %s %s", manifest.package.name, manifest.package.version)
        return manifest

    def parse(self, content: str) -> Manifest[str, str]:
        """Parse Cargo.toml content into a Manifest."""
        return self.from_dict(tomllib.loads(content))


def parse_manifest(content: str) -> Manifest[str, str]:
    """Parse Cargo.toml content into a Manifest.

    Args:
        content: The Cargo.toml file content

    Returns:
        Parsed Manifest object

    Raises:
        tomllib.TOMLDecodeError: If the content is not valid TOML
        ManifestFormatError: If the document lacks required fields
    """
    parser = ManifestParser()
    return parser.parse(content)


def manifest_from_dict(data: Mapping[str, Any]) -> Manifest[str, str]:
    """Build a Manifest from a mapping produced by any TOML parser."""
    return ManifestParser().from_dict(data)
