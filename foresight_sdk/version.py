"""
Package version lookup.

Installed distributions report their metadata version; a source checkout
falls back to the version declared in ``pyproject.toml``.
"""
import importlib.metadata
import pathlib
from typing import Tuple, Union

import tomli

DIST_NAME = "foresight-sdk"
UNKNOWN_VERSION = "0.0.0+unknown"

_PYPROJECT = pathlib.Path(__file__).resolve().parent.parent / "pyproject.toml"


def _source_version() -> str:
    with _PYPROJECT.open("rb") as f:
        return tomli.load(f)["project"]["version"]


def get_version() -> str:
    """Version of the installed package, or of the source tree it runs from"""
    try:
        return importlib.metadata.version(DIST_NAME)
    except importlib.metadata.PackageNotFoundError:
        pass
    try:
        return _source_version()
    except (OSError, KeyError, tomli.TOMLDecodeError):
        return UNKNOWN_VERSION


def _version_info(version: str) -> Tuple[Union[int, str], ...]:
    release = version.split("+", 1)[0]
    return tuple(int(part) if part.isdigit() else part for part in release.split("."))


__version__ = get_version()
__version_info__ = _version_info(__version__)
