"""pollchannel: a polling, file-mediated command channel for sandboxed hosts."""

__version__ = "0.3.0"
