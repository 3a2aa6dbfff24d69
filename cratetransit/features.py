"""Feature spec parsing and routing between the two index feature maps.

Index consumers that predate namespaced features fail to load an entry whose
``features`` map contains ``dep:`` or ``?/`` syntax, so features using those
forms are moved to ``features2`` and the entry is tagged schema version 2.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)

IMPLICIT_DEPENDENCY_PREFIX = "dep:"
WEAK_DEPENDENCY_MARKER = "?/"


class FeatureSpec:
    """One entry of a feature's list."""

    is_namespaced = False


@dataclass(frozen=True)
class LocalFeature(FeatureSpec):
    """``feat``: another feature of the same package."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ImplicitDependency(FeatureSpec):
    """``dep:pkg``: enables the optional dependency without any of its features."""

    dep: str
    is_namespaced = True

    def __str__(self) -> str:
        return f"{IMPLICIT_DEPENDENCY_PREFIX}{self.dep}"


@dataclass(frozen=True)
class StrongDependencyFeature(FeatureSpec):
    """``pkg/feat``: enables ``pkg`` and its feature ``feat``."""

    dep: str
    feature: str

    def __str__(self) -> str:
        return f"{self.dep}/{self.feature}"


@dataclass(frozen=True)
class WeakDependencyFeature(FeatureSpec):
    """``pkg?/feat``: enables ``feat`` only if ``pkg`` is enabled some other way."""

    dep: str
    feature: str
    is_namespaced = True

    def __str__(self) -> str:
        return f"{self.dep}{WEAK_DEPENDENCY_MARKER}{self.feature}"


def parse_feature_spec(text: str) -> FeatureSpec:
    """Parse one feature spec string into its variant.

    No check is made that the referenced dependency or feature exists.
    """
    if text.startswith(IMPLICIT_DEPENDENCY_PREFIX):
        return ImplicitDependency(text[len(IMPLICIT_DEPENDENCY_PREFIX):])
    if WEAK_DEPENDENCY_MARKER in text:
        dep, feature = text.split(WEAK_DEPENDENCY_MARKER, 1)
        return WeakDependencyFeature(dep, feature)
    if "/" in text:
        dep, feature = text.split("/", 1)
        return StrongDependencyFeature(dep, feature)
    return LocalFeature(text)


def parse_feature_specs(texts: Sequence[str]) -> list[FeatureSpec]:
    return [parse_feature_spec(text) for text in texts]


def requires_extended_schema(specs: Sequence[FeatureSpec]) -> bool:
    """True if any spec uses syntax older index consumers cannot read."""
    return any(spec.is_namespaced for spec in specs)


def partition_features(
    features: Mapping[str, Sequence[FeatureSpec]],
) -> tuple[dict[str, list[FeatureSpec]], dict[str, list[FeatureSpec]]]:
    """Split a feature map into the primary and the extended map.

    A whole feature moves to the extended map as soon as one of its specs is
    namespaced; everything else stays in the primary map, whatever the other
    features need.

    Args:
        features: Feature name to parsed spec list

    Returns:
        Tuple of (primary, extended), both with sorted keys
    """
    primary: dict[str, list[FeatureSpec]] = {}
    extended: dict[str, list[FeatureSpec]] = {}

    for name in sorted(features):
        specs = list(features[name])
        if requires_extended_schema(specs):
            extended[name] = specs
        else:
            primary[name] = specs

    if extended:
        logger.debug("Features needing the extended schema: %s", ", ".join(extended))

    return primary, extended


def format_features(features: Mapping[str, Sequence[FeatureSpec]]) -> dict[str, list[str]]:
    """Render a parsed feature map back to its wire form."""
    return {name: [str(spec) for spec in specs] for name, specs in features.items()}


def freeze_features(features: Mapping[str, Sequence[FeatureSpec]]) -> Mapping[str, tuple[FeatureSpec, ...]]:
    """Read-only copy of a feature map, for storing in frozen values."""
    return MappingProxyType({name: tuple(specs) for name, specs in features.items()})
