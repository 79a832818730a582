"""Platform config loading: built-in defaults, a YAML override file, env refs."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from cdc_reconciler.config.defaults import load_defaults, merge_configs
from cdc_reconciler.config.models import PlatformConfig

# ${VAR} or ${VAR:-default}; "\}" inside a default is a literal brace.
_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>(?:[^}\\]|\\.)*))?}")


def _expand(text: str, where: str) -> str:
    def _sub(ref: re.Match[str]) -> str:
        name, default = ref.group("name"), ref.group("default")
        if name in os.environ:
            return os.environ[name]
        if default is None:
            msg = f"Environment variable '{name}' is not set and has no default"
            if where:
                msg += f" (referenced by {where})"
            raise ValueError(msg)
        return default.replace("\\}", "}")

    return _ENV_REF.sub(_sub, text)


def resolve_env_vars(data: Any, where: str = "") -> Any:
    """Expand env references in every string of a parsed YAML tree.

    *where* is the dotted key path, used only in the error for an unset
    variable without a default.
    """
    if isinstance(data, str):
        return _expand(data, where)
    if isinstance(data, dict):
        return {
            key: resolve_env_vars(value, f"{where}.{key}" if where else str(key))
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [
            resolve_env_vars(item, f"{where}[{i}]") for i, item in enumerate(data)
        ]
    return data


def _read_overrides(path: Path) -> dict[str, Any]:
    if not path.is_file():
        msg = f"Platform config file not found: {path}"
        raise FileNotFoundError(msg)
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
        msg = f"Platform config {path} is not valid YAML{where}: {exc}"
        raise ValueError(msg) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = (
            f"Platform config {path} must map section names to settings, "
            f"got a {type(data).__name__}"
        )
        raise TypeError(msg)
    return data


def load_platform_config(path: str | Path | None = None) -> PlatformConfig:
    """Built-in defaults, deep-merged with the overrides in *path* when given."""
    merged = load_defaults("platform")
    if path is not None:
        merged = merge_configs(merged, _read_overrides(Path(path)))
    merged = resolve_env_vars(merged)
    try:
        return PlatformConfig.model_validate(merged)
    except ValidationError as exc:
        msg = f"Invalid platform config ({path or 'built-in defaults'}):\n{exc}"
        raise ValueError(msg) from exc
