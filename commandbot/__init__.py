"""commandbot — prefix-command chat bot with an HTTP status surface."""

from commandbot.config import __version__

__all__ = ["__version__"]
