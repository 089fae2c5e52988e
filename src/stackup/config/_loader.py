# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Raw configuration layers: the TOML file, STACKUP_* variables, merging."""

import os
import tomllib
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Any, Final

import orjson

from stackup.exceptions import ConfigLoadError

ENV_PREFIX: Final = "STACKUP_"


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Parse a stackup.toml file without validating it.

    Raises:
        FileNotFoundError: If the file is missing.
        ConfigLoadError: If the file is not valid TOML; carries the line
            and column of the syntax error.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file {path}: {e}"
        raise ConfigLoadError(msg, path=path, line=e.lineno, column=e.colno) from e


def copy_value(value: Any) -> Any:  # pyright: ignore[reportExplicitAny]
    """Copy nested tables and arrays so merges never alias a source layer."""
    if isinstance(value, dict):
        return {k: copy_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [copy_value(item) for item in value]
    return value


def deep_merge(
    base: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    override: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Layer `override` on top of `base` and return the result.

    Tables merge key by key. Arrays are taken whole from the higher layer,
    which is how a [[services]] array in a file replaces the built-in
    service table instead of appending to it. Neither argument is mutated.

    Args:
        base: The lower-precedence layer.
        override: The higher-precedence layer.

    Returns:
        A new dictionary holding both layers.
    """
    result = {key: copy_value(value) for key, value in base.items()}
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy_value(value)
    return result


def parse_env_vars(
    prefix: str = ENV_PREFIX,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Collect STACKUP_* variables into a nested configuration layer.

    A double underscore separates section and key, so
    STACKUP_SUPERVISOR__CONTROL_PORT=9191 becomes
    {"supervisor": {"control_port": 9191}}. Variables that name no known
    key end up as extra top-level keys, which Config ignores.
    """
    result: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        config_key = key[len(prefix) :]
        if not config_key:
            continue

        set_nested_key(
            result,
            config_key.replace("__", ".").lower(),
            parse_env_value(value),
        )

    return result


def parse_env_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Infer the type of an environment value.

    true/false become booleans, integers and decimals become numbers, and a
    value wrapped in [] or {} is read as JSON (so STACKUP_SERVICES can hold
    a whole table). Anything else, including "0.0.0.0", stays a string.
    """
    lower_value = value.lower()
    if lower_value in ("true", "false"):
        return lower_value == "true"

    try:
        return int(value)
    except ValueError:
        pass

    if "." in value:
        try:
            return float(value)
        except ValueError:
            pass

    if (value.startswith("[") and value.endswith("]")) or (
        value.startswith("{") and value.endswith("}")
    ):
        try:
            return orjson.loads(value)
        except orjson.JSONDecodeError:
            pass

    return value


def set_nested_key(
    d: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    key_path: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Store `value` under a dotted path, creating tables on the way.

    Example:
        >>> layer = {}
        >>> set_nested_key(layer, "supervisor.control_port", 9191)
        >>> layer
        {'supervisor': {'control_port': 9191}}
    """
    *parents, leaf = key_path.split(".")
    current = d
    for part in parents:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[leaf] = value
