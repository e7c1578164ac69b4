"""interlink: pluggable handler loader and dispatcher for Discord bots."""

__version__ = "1.0.0"
