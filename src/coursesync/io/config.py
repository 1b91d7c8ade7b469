"""Configuration loading utilities for coursesync."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

from coursesync.core.models import Config


DEFAULT_CONFIG_NAME = "coursesync.toml"

# (section, key in section, Config field)
_SECTION_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("repository", "main_branch", "main_branch"),
    ("repository", "remote", "remote"),
    ("discovery", "pattern", "branch_pattern"),
    ("discovery", "solution_suffix", "solution_suffix"),
    ("rebase", "interactive", "interactive_rebase"),
    ("rebase", "update_refs", "update_refs"),
    ("safety", "dry_run", "dry_run"),
    ("safety", "backup_refs", "backup_refs"),
    ("safety", "checkpoint_file", "checkpoint_file"),
)


def load_config(
    *,
    path: Path | str | None = None,
    data: str | bytes | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Config:
    """Load and validate configuration from TOML data.

    Exactly one of ``path`` or ``data`` must be provided. ``overrides`` allows
    callers to patch specific sections before validation, which is useful for
    CLI flags or tests.
    """
    if (path is None and data is None) or (path is not None and data is not None):
        msg = "Provide exactly one of 'path' or 'data' when loading configuration."
        raise ValueError(msg)

    raw_content: dict[str, Any]
    if path is not None:
        raw_content = tomllib.loads(_read_config_file(Path(path)))
    else:
        if data is None:
            msg = "Configuration data must be provided when path is omitted."
            raise ValueError(msg)
        text = data if isinstance(data, str) else data.decode()
        raw_content = tomllib.loads(text)

    if overrides is not None:
        typed_overrides: dict[str, Any] = {str(key): value for key, value in overrides.items()}
        raw_content = _merge_dicts(dict(raw_content), typed_overrides)

    return Config.model_validate(_normalise(raw_content))


def _read_config_file(path: Path) -> str:
    if not path.exists():
        raise FileNotFoundError(path)
    if not path.is_file():
        msg = f"Configuration path is not a file: {path}"
        raise ValueError(msg)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Unable to read configuration file {path}: {exc}"
        raise ValueError(msg) from exc


def _merge_dicts(base: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        if (
            key in base
            and isinstance(base[key], Mapping)
            and isinstance(value, Mapping)
        ):
            nested_base = cast("dict[str, Any]", dict(base[key]))
            nested_updates = cast("Mapping[str, Any]", value)
            base[key] = _merge_dicts(nested_base, nested_updates)
        else:
            base[key] = value
    return base


def _normalise(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten the sectioned TOML layout into :class:`Config` fields.

    Unknown sections are passed through so that validation rejects them.
    """
    sections = {section for section, _, _ in _SECTION_FIELDS}
    config_dict: dict[str, Any] = {key: value for key, value in raw.items() if key not in sections}
    for section, key, field_name in _SECTION_FIELDS:
        section_values = raw.get(section, {})
        if not isinstance(section_values, Mapping):
            msg = f"Configuration section [{section}] must be a table."
            raise ValueError(msg)
        typed_section = cast("Mapping[str, Any]", section_values)
        if key in typed_section:
            config_dict[field_name] = typed_section[key]

    for section in sections:
        section_values = cast("Mapping[str, Any]", raw.get(section, {}))
        known = {key for name, key, _ in _SECTION_FIELDS if name == section}
        unknown = sorted(set(section_values) - known)
        if unknown:
            # Surface the misspelt key through model validation.
            config_dict.update({f"{section}.{key}": section_values[key] for key in unknown})

    return config_dict


def discover_config(repo_path: Path) -> Path | None:
    """Return ``coursesync.toml`` at the repository root when it exists."""
    candidate = Path(repo_path) / DEFAULT_CONFIG_NAME
    return candidate if candidate.is_file() else None


__all__ = ["DEFAULT_CONFIG_NAME", "discover_config", "load_config"]
