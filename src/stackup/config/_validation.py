# pyright: reportAny=false, reportExplicitAny=false, reportUnknownArgumentType=false
"""Configuration validation.

This module turns pydantic validation failures into ConfigValidationError
and checks that every service command resolves to an executable.
"""

import os
import shutil
from collections.abc import Iterable  # noqa: TC003 - Used in runtime type annotations
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from stackup.exceptions import ConfigValidationError, MissingExecutableError
from stackup.supervisor import ServiceSpec  # noqa: TC001 - Used in runtime type annotations

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Represents a configuration validation issue.

    Attributes:
        key: Dotted path to the configuration key (e.g., "services.0.ports").
        message: Human-readable description of the issue.
        expected: Description of expected value or type, if available.
        actual: The actual value that caused the issue.
        source: Where the invalid value came from, or None.
        severity: Whether this is an error or warning.
    """

    key: str
    message: str
    expected: str | None
    actual: Any
    source: str | None
    severity: Literal["error", "warning"]


def _pydantic_error_to_issue(
    error: "ErrorDetails",  # noqa: UP037
    source: str | None,
) -> ValidationIssue:
    loc = error.get("loc", ())
    ctx = error.get("ctx")
    expected: str | None = None
    if ctx is not None:
        if "expected" in ctx:
            expected = str(ctx["expected"])
        elif "pattern" in ctx:
            expected = f"pattern: {ctx['pattern']}"

    return ValidationIssue(
        key=".".join(str(part) for part in loc) or "<root>",
        message=str(error.get("msg", "Validation error")),
        expected=expected,
        actual=error.get("input"),
        source=source,
        severity="error",
    )


def raise_if_validation_errors(
    issues: list[ValidationIssue],
    source: str | None = None,
) -> None:
    """Raise ConfigValidationError for the first error found.

    Raises:
        ConfigValidationError: If any issues have severity="error".
    """
    errors = [i for i in issues if i.severity == "error"]
    if errors:
        issue = errors[0]
        msg = f"Invalid configuration value for '{issue.key}': {issue.message}"
        raise ConfigValidationError(
            msg,
            key=issue.key,
            value=issue.actual,
            expected=issue.expected or issue.message,
            source=source or issue.source,
        )


M = TypeVar("M", bound=BaseModel)


def validate_config(
    schema: type[M],
    data: dict[str, Any],
    *,
    source: str | None = None,
) -> M:
    """Validate a configuration dictionary into a model instance.

    Args:
        schema: The model to validate against.
        data: The merged configuration dictionary.
        source: Where the values came from.

    Returns:
        The validated model.

    Raises:
        ConfigValidationError: If the dictionary is invalid.
    """
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        issues = [_pydantic_error_to_issue(err, source) for err in e.errors()]
        raise_if_validation_errors(issues, source)
        raise  # pragma: no cover - every pydantic error is an error issue


def resolve_command(spec: ServiceSpec) -> Path | None:
    """Resolve the executable a service would run.

    Commands containing a slash are taken as paths, relative ones against
    the service's working directory; bare names are looked up on PATH.

    Returns:
        Path of the executable, or None if it cannot be found.
    """
    command = spec.command
    if os.sep not in command:
        found = shutil.which(command)
        return Path(found) if found else None

    path = Path(command)
    if not path.is_absolute() and spec.working_dir is not None:
        path = spec.working_dir / path
    if path.is_file() and os.access(path, os.X_OK):
        return path
    return None


def check_executables(specs: Iterable[ServiceSpec]) -> None:
    """Check that every service command resolves to an executable.

    Raises:
        MissingExecutableError: For the first command that does not resolve.
    """
    for spec in specs:
        if resolve_command(spec) is None:
            msg = f"Service '{spec.name}': command '{spec.command}' is not executable"
            if spec.working_dir is not None:
                msg += f" (working_dir: {spec.working_dir})"
            raise MissingExecutableError(
                msg, service_name=spec.name, command=spec.command
            )
