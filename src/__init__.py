"""docsift: document analysis and binary storage core."""

from docsift.version import __version__

__all__ = ["__version__"]
