"""Transactional application of AI-proposed hunks to a working tree."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("hunkguard")
except PackageNotFoundError:
    # Fallback for development mode
    __version__ = "0.0.0-dev"
