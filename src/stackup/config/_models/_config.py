"""The validated stackup configuration and its service table."""

from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from stackup.config._defaults import DEFAULT_CONFIG
from stackup.config._loader import deep_merge, parse_env_vars, read_toml_file
from stackup.config._models._common import ConfigSource, ConfigSourceName
from stackup.config._models._logging import LoggingConfig
from stackup.config._models._services import ServiceConfig
from stackup.config._models._supervisor import SupervisorSettings
from stackup.supervisor import DependencyGraph, ServiceSpec


class Config(BaseModel):
    """Frozen configuration: supervisor settings, logging and services.

    Build it with load(), from_file() or from_dict(); each validates the
    merged layers and reports the first bad key with its source.

    Attributes:
        supervisor: The [supervisor] section.
        logging: The [logging] section.
        services: The service descriptor table, in declaration order.
    """

    # Unknown top-level keys are ignored so that unrelated STACKUP_*
    # variables (STACKUP_DEBUG, STACKUP_CONFIG) do not fail validation.
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    supervisor: SupervisorSettings = Field(default_factory=SupervisorSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    services: tuple[ServiceConfig, ...] = ()

    _sources: tuple[ConfigSource, ...] = PrivateAttr(default=())

    @model_validator(mode="after")
    def _check_service_table(self) -> Self:
        names: set[str] = set()
        owners: dict[int, str] = {}
        for service in self.services:
            if service.name in names:
                msg = f"duplicate service name '{service.name}'"
                raise ValueError(msg)
            names.add(service.name)
            for port in service.ports:
                if port in owners:
                    msg = (
                        f"port {port} is declared by both '{owners[port]}' "
                        f"and '{service.name}'"
                    )
                    raise ValueError(msg)
                owners[port] = service.name
        return self

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
        *,
        source: str | None = None,
    ) -> Self:
        """Create configuration from a dictionary merged over the defaults.

        Args:
            data: Dictionary of configuration values.
            source: Where the values came from, for error messages.

        Returns:
            Configuration object from the dictionary.

        Raises:
            ConfigValidationError: If validation fails.
        """
        # Deferred import to avoid circular dependency
        from stackup.config._validation import validate_config  # noqa: PLC0415

        merged = deep_merge(DEFAULT_CONFIG, data)
        return validate_config(cls, merged, source=source)

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Load configuration from a specific file.

        Args:
            path: Path to the TOML config file.

        Returns:
            Configuration object from the defaults and the file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If validation fails.
        """
        data = read_toml_file(path)
        config = cls.from_dict(data, source=str(path))
        config._sources = (
            ConfigSource(
                name=ConfigSourceName.FILE, path=path, exists=True, values=data
            ),
        )
        return config

    @classmethod
    def load(
        cls,
        *,
        config_path: Path | None = None,
        include_env: bool = True,
        cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]  # noqa: E501
    ) -> Self:
        """Load merged configuration from all sources.

        Merges sources in precedence order (defaults -> file -> env -> cli).

        Args:
            config_path: Explicit config file (--config flag).
            include_env: Include STACKUP_* environment variables.
            cli_overrides: Values given as CLI flags.

        Returns:
            Merged configuration object.

        Raises:
            FileNotFoundError: If an explicitly named file does not exist.
            ConfigLoadError: If the config file cannot be parsed.
            ConfigValidationError: If the merged config fails validation.
        """
        # Deferred imports to avoid circular dependency
        from stackup.config._discovery import discover_sources  # noqa: PLC0415
        from stackup.config._validation import validate_config  # noqa: PLC0415

        sources = discover_sources(
            config_path=config_path,
            include_env=include_env,
            cli_overrides=cli_overrides,
        )

        merged: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
        loaded_sources: list[ConfigSource] = []
        file_source: str | None = None

        # Sources are discovered highest-to-lowest, so reverse for merging
        for source in reversed(sources):
            values = source.values
            if source.name is ConfigSourceName.ENV:
                values = parse_env_vars()
            elif source.path is not None and source.exists:
                values = read_toml_file(source.path)
                file_source = str(source.path)

            loaded_sources.append(
                ConfigSource(
                    name=source.name,
                    path=source.path,
                    exists=source.exists,
                    values=values,
                )
            )
            if values:
                merged = deep_merge(merged, values)

        config = validate_config(cls, merged, source=file_source)
        config._sources = tuple(reversed(loaded_sources))
        return config

    @property
    def sources(self) -> list[ConfigSource]:
        """Return the sources that contributed to this configuration."""
        return list(self._sources)

    def to_specs(self) -> list[ServiceSpec]:
        """Return the immutable service descriptors in declaration order."""
        return [service.to_spec() for service in self.services]

    def build_graph(self) -> DependencyGraph:
        """Build and validate the dependency graph of the service table.

        Raises:
            CircularDependencyError: If dependencies form a cycle.
            UnknownDependencyError: If a dependency names an unknown service.
        """
        return DependencyGraph(self.to_specs())
