"""duEuler Foundation."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("du-foundation")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
