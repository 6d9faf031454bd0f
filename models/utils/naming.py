"""Shared helpers to keep artifact filenames consistent across vectorizer outputs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


# Canonical prefixes for each artifact kind. "skeleton" is accepted as an alias
# so callers can use whichever spelling reads best at the call site.
STAGE_PREFIXES: dict[str, str] = {
    "skeletonized": "skeletonized_",
    "polyline": "polyline_",
    "graph": "graph_",
    "preview": "preview_",
}

STAGE_ALIASES: dict[str, str] = {
    "skeleton": "skeletonized",
    "overlay": "preview",
}


@dataclass(frozen=True, slots=True)
class StageSpec:
    """Metadata describing an artifact kind's on-disk representation."""

    name: str
    prefix: str
    suffix: str


STAGE_SPECS: dict[str, StageSpec] = {
    "skeletonized": StageSpec("skeletonized", STAGE_PREFIXES["skeletonized"], ".png"),
    "polyline": StageSpec("polyline", STAGE_PREFIXES["polyline"], ".json"),
    "graph": StageSpec("graph", STAGE_PREFIXES["graph"], ".json"),
    "preview": StageSpec("preview", STAGE_PREFIXES["preview"], ".png"),
}


def canonical_stage_name(stage: str) -> str:
    key = stage.strip().lower()
    return STAGE_ALIASES.get(key, key)


def stage_spec(stage: str) -> StageSpec:
    name = canonical_stage_name(stage)
    spec = STAGE_SPECS.get(name)
    if spec is None:
        raise KeyError(f"Unknown stage '{stage}'")
    return spec


def strip_prefix(value: str, *, extra: Iterable[str] | None = None) -> str:
    """Remove any known artifact prefix from ``value``."""

    prefixes = list(dict.fromkeys(STAGE_PREFIXES.values()))
    if extra:
        prefixes.extend(extra)
    for prefix in prefixes:
        if value.startswith(prefix) and len(value) > len(prefix):
            return value[len(prefix) :]
    return value


def apply_stage_prefix(stage: str, base: str) -> str:
    """Return ``base`` prefixed for ``stage`` (never doubling a prefix)."""

    return stage_spec(stage).prefix + strip_prefix(base)


def prefixed_name(stage: str, base: str) -> str:
    """Complete filename (prefix + base + suffix) for ``stage``."""

    spec = stage_spec(stage)
    return f"{apply_stage_prefix(stage, base)}{spec.suffix}"


__all__ = [
    "STAGE_PREFIXES",
    "StageSpec",
    "apply_stage_prefix",
    "canonical_stage_name",
    "prefixed_name",
    "stage_spec",
    "strip_prefix",
]
