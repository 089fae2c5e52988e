"""stackup: run a table of interdependent services inside one container."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stackup")
except PackageNotFoundError:  # pragma: no cover - running from a source tree
    __version__ = "0.0.0"

__all__ = ["__version__"]
