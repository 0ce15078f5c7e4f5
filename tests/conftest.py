"""Pytest configuration for tracecore tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts. The packet kernels
    need double precision to agree with the scalar path.
    """
    import tracecore

    tracecore.init("cpu")
    yield
