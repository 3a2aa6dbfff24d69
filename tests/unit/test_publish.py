"""Tests for building publish payloads."""

import json

import pytest

from cratetransit.errors import ManifestConsumedError, ManifestFormatError
from cratetransit.models import DependencyKind
from cratetransit.parse_manifest import parse_manifest
from cratetransit.publish import CRATES_IO_INDEX, PublishPayload

MIRROR = "https://mirror.example.com/index"


def manifest_with(deps_toml: str, features_toml: str = ""):
    return parse_manifest(
        '[package]\nname = "a"\nversion = "1.0.0"\n' + deps_toml + features_toml
    )


class TestPublishDependencies:
    """Test mapping manifest dependencies to payload dependencies."""

    def test_defaults_applied(self):
        payload = PublishPayload.from_manifest(manifest_with('[dependencies]\nb = "1"\n'), CRATES_IO_INDEX)
        dep = payload.dependencies[0]

        assert dep.name == "b"
        assert str(dep.requirements) == "^1"
        assert dep.optional is False
        assert dep.default_features is True
        assert dep.features == ()
        assert dep.kind is DependencyKind.NORMAL
        assert dep.registry is None
        assert dep.explicit_name_in_toml is None
        assert dep.target is None

    def test_scalar_fields_carried(self):
        manifest = manifest_with(
            '[dependencies]\n'
            'b = { version = ">=1.2, <2", optional = true, default-features = false, '
            'features = ["x", "y"], target = "cfg(unix)" }\n'
        )
        dep = PublishPayload.from_manifest(manifest, CRATES_IO_INDEX).dependencies[0]

        assert str(dep.requirements) == ">=1.2, <2"
        assert dep.optional is True
        assert dep.default_features is False
        assert dep.features == ("x", "y")
        assert dep.target == "cfg(unix)"

    def test_rename_records_alias(self):
        manifest = manifest_with('[dependencies]\njson = { version = "1", package = "serde_json" }\n')
        dep = PublishPayload.from_manifest(manifest, CRATES_IO_INDEX).dependencies[0]

        assert dep.name == "serde_json"
        assert dep.explicit_name_in_toml == "json"

    def test_dev_and_build_never_optional(self, caplog):
        manifest = manifest_with(
            '[dev-dependencies]\nd = { version = "1", optional = true }\n'
            '[build-dependencies]\nb = { version = "1", optional = true }\n'
        )
        deps = PublishPayload.from_manifest(manifest, CRATES_IO_INDEX).dependencies

        assert [(d.kind, d.optional) for d in deps] == [
            (DependencyKind.DEV, False),
            (DependencyKind.BUILD, False),
        ]
        assert "optional" in caplog.text

    def test_order_follows_extraction(self, sample_manifest):
        payload = PublishPayload.from_manifest(sample_manifest, CRATES_IO_INDEX)

        assert [(d.name, d.kind.value) for d in payload.dependencies] == [
            ("serde", "normal"),
            ("rand", "normal"),
            ("serde_json", "normal"),
            ("private", "normal"),
            ("winapi", "normal"),
            ("serde", "dev"),
            ("cc", "build"),
        ]


class TestRegistryResolution:
    """Test when the payload names a dependency's registry."""

    def test_default_registry_omitted_for_crates_io(self):
        payload = PublishPayload.from_manifest(manifest_with('[dependencies]\nb = "1"\n'), CRATES_IO_INDEX)
        assert payload.dependencies[0].registry is None

    def test_default_registry_named_for_other_target(self):
        payload = PublishPayload.from_manifest(manifest_with('[dependencies]\nb = "1"\n'), MIRROR)
        assert payload.dependencies[0].registry == CRATES_IO_INDEX

    def test_alternate_registry_named(self):
        manifest = manifest_with(f'[dependencies]\nb = {{ version = "1", registry-index = "{MIRROR}" }}\n')
        payload = PublishPayload.from_manifest(manifest, CRATES_IO_INDEX)
        assert payload.dependencies[0].registry == MIRROR

    def test_alternate_registry_omitted_when_it_is_the_target(self):
        manifest = manifest_with(f'[dependencies]\nb = {{ version = "1", registry-index = "{MIRROR}" }}\n')
        payload = PublishPayload.from_manifest(manifest, MIRROR)
        assert payload.dependencies[0].registry is None

    def test_registry_comparison_is_literal(self):
        """Should not treat a trailing slash as the same registry."""
        manifest = manifest_with(f'[dependencies]\nb = {{ version = "1", registry-index = "{MIRROR}/" }}\n')
        payload = PublishPayload.from_manifest(manifest, MIRROR)
        assert payload.dependencies[0].registry == MIRROR + "/"


class TestPublishPayload:
    """Test payload metadata and serialization."""

    def test_metadata_copied(self, sample_manifest):
        payload = PublishPayload.from_manifest(sample_manifest, CRATES_IO_INDEX)

        assert payload.name == "roundtrip"
        assert str(payload.version) == "0.1.0"
        assert payload.authors == ("Jane Doe <jane@example.com>",)
        assert payload.keywords == ("kw",)
        assert payload.categories == ("development-tools",)
        assert payload.license == "MIT OR Apache-2.0"
        assert payload.links == "z"
        assert payload.badges == {}

    def test_missing_metadata_defaults(self):
        payload = PublishPayload.from_manifest(manifest_with(""), CRATES_IO_INDEX)

        assert payload.authors == ()
        assert payload.keywords == ()
        assert payload.categories == ()
        assert payload.description is None
        assert payload.features == {}

    def test_readme_only_from_caller(self, sample_manifest):
        """Should not derive README fields from the manifest's readme path."""
        payload = PublishPayload.from_manifest(sample_manifest, CRATES_IO_INDEX)
        assert payload.readme is None
        assert payload.readme_file is None

    def test_readme_supplied(self, sample_manifest):
        payload = PublishPayload.from_manifest(
            sample_manifest, CRATES_IO_INDEX, readme="# Hello", readme_file="README.md"
        )
        assert payload.readme == "# Hello"
        assert payload.readme_file == "README.md"

    def test_payload_maps_are_read_only(self, sample_manifest):
        payload = PublishPayload.from_manifest(sample_manifest, CRATES_IO_INDEX)

        with pytest.raises(TypeError):
            payload.features["new"] = ()
        with pytest.raises(TypeError):
            payload.badges["build"] = "passing"
        assert isinstance(payload.features["default"], tuple)

    def test_manifest_single_use(self, sample_manifest):
        PublishPayload.from_manifest(sample_manifest, CRATES_IO_INDEX)
        with pytest.raises(ManifestConsumedError):
            PublishPayload.from_manifest(sample_manifest, CRATES_IO_INDEX)

    def test_wire_format(self, sample_manifest):
        data = json.loads(PublishPayload.from_manifest(sample_manifest, CRATES_IO_INDEX).to_json())

        assert list(data) == [
            "name", "vers", "deps", "features", "authors", "description",
            "documentation", "homepage", "readme", "readme_file", "keywords",
            "categories", "license", "license_file", "repository", "links", "badges",
        ]
        assert data["vers"] == "0.1.0"
        assert data["readme"] is None
        assert data["features"]["derive"] == ["dep:serde"]
        assert list(data["features"]) == sorted(data["features"])

        json_dep = data["deps"][2]
        assert json_dep == {
            "name": "serde_json",
            "version_req": "^1.2",
            "features": [],
            "optional": False,
            "default_features": False,
            "target": None,
            "kind": "normal",
            "explicit_name_in_toml": "json",
        }
        assert data["deps"][3]["registry"] == "https://example.com/private-index"

    def test_links_omitted_when_absent(self):
        data = PublishPayload.from_manifest(manifest_with(""), CRATES_IO_INDEX).to_dict()
        assert "links" not in data

    def test_from_json_reads_wire_format(self, sample_manifest):
        payload = PublishPayload.from_manifest(sample_manifest, CRATES_IO_INDEX)
        assert PublishPayload.from_json(payload.to_json()) == payload

    def test_from_dict_missing_field(self):
        with pytest.raises(ManifestFormatError, match="vers"):
            PublishPayload.from_dict({"name": "a"})

    def test_from_dict_bad_kind(self):
        with pytest.raises(ManifestFormatError):
            PublishPayload.from_dict({
                "name": "a",
                "vers": "1.0.0",
                "deps": [{"name": "b", "version_req": "1", "kind": "peer"}],
            })
