"""Extractor configuration, loadable from YAML."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from stdfprr.core.stdf import FAR_SUB, FAR_TYPE, PRR_SUB, PRR_TYPE

# Type codes the producing toolchain emits for PRR besides the canonical one.
OBSERVED_PRR_ALIASES = frozenset({25, 185})


class ConfigError(ValueError):
    """Raised for malformed or unknown configuration values."""


@dataclass(frozen=True)
class ExtractorConfig:
    target_type_codes: frozenset[int] = field(
        default_factory=lambda: frozenset({PRR_TYPE}) | OBSERVED_PRR_ALIASES
    )
    # REC_TYP 5 is shared with PIR, so the canonical code also needs its REC_SUB;
    # aliases match on REC_TYP alone.
    canonical_type: int = PRR_TYPE
    canonical_subtype: int = PRR_SUB
    file_header_type: int = FAR_TYPE
    file_header_subtype: int = FAR_SUB
    supported_cpu_type: int = 2
    supported_stdf_version: int = 4
    max_record_length: int = 100_000
    max_invalid_positions: int = 5
    min_bin: int = -10_000
    max_head_site: int = 255
    annotate_empty: bool = True

    def __post_init__(self) -> None:
        if not self.target_type_codes:
            raise ConfigError("target_type_codes must not be empty")
        for code in self.target_type_codes:
            if not 0 <= code <= 255:
                raise ConfigError(f"type code {code} does not fit in REC_TYP (0..255)")
        for name in (
            "canonical_type",
            "canonical_subtype",
            "file_header_type",
            "file_header_subtype",
        ):
            if not 0 <= getattr(self, name) <= 255:
                raise ConfigError(f"{name} does not fit in one byte (0..255)")
        if self.file_header_type in self.target_type_codes:
            raise ConfigError("file_header_type cannot also be a target type code")
        if self.max_record_length <= 0:
            raise ConfigError("max_record_length must be positive")
        if self.max_invalid_positions <= 0:
            raise ConfigError("max_invalid_positions must be positive")

    def with_overrides(self, **changes: Any) -> ExtractorConfig:
        return replace(self, **changes)


# YAML key -> dataclass field, where they differ
_YAML_ALIASES = {"target_types": "target_type_codes"}


def config_from_dict(data: dict[str, Any]) -> ExtractorConfig:
    """Build a config from a mapping, rejecting unknown keys."""
    known = {f.name for f in fields(ExtractorConfig)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        name = _YAML_ALIASES.get(key, key)
        if name not in known:
            raise ConfigError(f"Unknown config key '{key}'")
        kwargs[name] = value

    codes = kwargs.get("target_type_codes")
    if codes is not None:
        if not isinstance(codes, (list, tuple, set, frozenset)):
            raise ConfigError("target_types must be a list of integers")
        try:
            kwargs["target_type_codes"] = frozenset(int(c) for c in codes)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"target_types must be a list of integers: {e}") from None

    for name in kwargs:
        if name in ("target_type_codes", "annotate_empty"):
            continue
        if isinstance(kwargs[name], bool) or not isinstance(kwargs[name], int):
            raise ConfigError(f"'{name}' must be an integer")
    if "annotate_empty" in kwargs and not isinstance(kwargs["annotate_empty"], bool):
        raise ConfigError("'annotate_empty' must be true or false")

    return ExtractorConfig(**kwargs)


def load_config(path: Path | str) -> ExtractorConfig:
    """Load an `ExtractorConfig` from a YAML file.

    The file may hold the keys at top level or under an `extractor:` section.
    An empty file yields the defaults.
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config root in {path} must be a mapping")
    if "extractor" in data:
        data = data["extractor"] or {}
        if not isinstance(data, dict):
            raise ConfigError("'extractor' section must be a mapping")
    return config_from_dict(data)
