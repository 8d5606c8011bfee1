"""HTTP API over bare Git repositories stored on local disk."""

__version__ = "0.1.0"
