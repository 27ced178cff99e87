from __future__ import annotations

import typing

from packaging.version import Version, parse

from lavapool.__version__ import __version__ as __version__

VERSION: Version = typing.cast(Version, parse(__version__))


__all__ = (
    "__version__",
    "VERSION",
)
