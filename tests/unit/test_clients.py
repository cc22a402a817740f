from __future__ import annotations

import os

from spanner_repro.infrastructure.clients import EMULATOR_HOST_ENV, emulator_host_scope


def test_emulator_host_scope_restores_unset_variable(monkeypatch):
    monkeypatch.delenv(EMULATOR_HOST_ENV, raising=False)

    with emulator_host_scope("localhost:9010"):
        assert os.environ[EMULATOR_HOST_ENV] == "localhost:9010"

    assert EMULATOR_HOST_ENV not in os.environ


def test_emulator_host_scope_restores_previous_value(monkeypatch):
    monkeypatch.setenv(EMULATOR_HOST_ENV, "elsewhere:1234")

    with emulator_host_scope("localhost:9010"):
        assert os.environ[EMULATOR_HOST_ENV] == "localhost:9010"

    assert os.environ[EMULATOR_HOST_ENV] == "elsewhere:1234"


def test_emulator_host_scope_restores_on_error(monkeypatch):
    monkeypatch.delenv(EMULATOR_HOST_ENV, raising=False)

    try:
        with emulator_host_scope("localhost:9010"):
            raise RuntimeError("client construction failed")
    except RuntimeError:
        pass

    assert EMULATOR_HOST_ENV not in os.environ
