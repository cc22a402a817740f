"""
Pytest configuration for the Spanner repro harness.

Provides fixtures for:
- Settings with test-specific overrides
- Settings cache isolation
- Emulator availability for integration tests
"""

from __future__ import annotations

import os
from typing import Generator

import pytest

from spanner_repro.config import Settings, get_settings
from spanner_repro.emulator.endpoints import is_reachable


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    """Keep `get_settings()` from leaking env overrides between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        spanner_project=os.getenv("SPANNER_PROJECT", "test-project"),
        spanner_instance=os.getenv("SPANNER_INSTANCE", "test-instance"),
        spanner_database=os.getenv("SPANNER_DATABASE", "repro-test-database"),
        emulator_grpc_host=os.getenv("EMULATOR_GRPC_HOST", "localhost:9010"),
        emulator_rest_host=os.getenv("EMULATOR_REST_HOST", "localhost:9020"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def emulator_available(test_settings: Settings) -> bool:
    """
    Check if an emulator is listening on the configured gRPC endpoint.

    Used to conditionally skip integration tests when it is not.
    """
    return is_reachable(test_settings.emulator_grpc_host)


@pytest.fixture(scope="session")
def emulator_endpoint(test_settings: Settings, emulator_available: bool) -> str:
    """
    Endpoint of a running emulator; skips the test when none is reachable.
    """
    if not emulator_available:
        pytest.skip("Spanner emulator not available for integration tests")
    return test_settings.emulator_grpc_host
