"""Pytest configuration and fixtures."""

import pytest

from cratetransit.parse_manifest import parse_manifest


@pytest.fixture
def sample_manifest_text():
    """A Cargo.toml touching every modelled field."""
    return """
[package]
name = "roundtrip"
version = " 0.1.0 "
rust-version = "1.60"
links = "z"
authors = ["Jane Doe <jane@example.com>"]
description = "A crate"
homepage = "https://example.com"
documentation = "https://docs.example.com"
readme = "README.md"
keywords = ["kw"]
categories = ["development-tools"]
license = "MIT OR Apache-2.0"
repository = "https://example.com/repo"

[dependencies]
serde = { version = "1.0", features = ["derive"], optional = true }
rand = "0.8"
json = { version = "^1.2", package = "serde_json", default-features = false }
private = { version = "0.3", registry-index = "https://example.com/private-index" }
winapi = { version = "0.3", target = "cfg(windows)" }

[dev-dependencies]
serde = "1.0"

[build-dependencies]
cc = "1"

[features]
default = ["std"]
std = ["serde/std"]
derive = ["dep:serde"]
weak = ["serde?/alloc", "std"]
"""


@pytest.fixture
def sample_manifest(sample_manifest_text):
    return parse_manifest(sample_manifest_text)


@pytest.fixture
def zero_checksum():
    return bytes(32)
