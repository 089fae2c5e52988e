"""Enums and source metadata shared by the config models."""

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Any


class LogLevel(StrEnum):
    """Supervisor log threshold, most verbose first."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Rendering of supervisor records and multiplexed service output.

    TEXT prefixes each line with the service name for a terminal; JSON
    writes one object per line for container log collectors.
    """

    JSON = "json"
    TEXT = "text"


class ConfigSourceName(StrEnum):
    """Where a layer of configuration came from.

    Listed from the layer that wins (command-line flags) to the one every
    other layer overrides (the built-in Airavata table).
    """

    CLI = "cli"
    ENV = "env"
    FILE = "file"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """One layer that went into a loaded Config.

    Attributes:
        name: Which kind of layer this is.
        path: The TOML file for FILE layers, None otherwise.
        exists: False only for a file layer whose file is missing.
        values: The raw, unvalidated values of the layer.
    """

    name: ConfigSourceName
    path: Path | None
    exists: bool
    values: dict[str, Any]  # pyright: ignore[reportExplicitAny]
