"""Pytest fixtures for meta-fuse tests."""

import pytest


@pytest.fixture
def anyio_backend():
    """pyfuse3 runs on trio, so async tests do too."""
    return "trio"
