"""Dynamic control-flow tracking: address transitions rendered as a digraph."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("iptrack")
except PackageNotFoundError:  # pragma: no cover - package metadata absent in dev mode
    __version__ = "0.0.0"

__all__ = ["__version__"]
