"""reconscan - concurrent reconnaissance scanning engine."""

from reconscan.version import __version__

__all__ = ["__version__"]
