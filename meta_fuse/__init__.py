"""Read-only FUSE driver for the meta-fuse virtual filesystem API."""

__version__ = "0.1.0"
