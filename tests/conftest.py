"""Shared fixtures: every test starts from a clean environment and config."""

from __future__ import annotations

import os

import pytest

from querylens.config import reset_config


@pytest.fixture(autouse=True)
def clean_config(monkeypatch: pytest.MonkeyPatch):
    """Drop QUERYLENS_* variables and the cached config around each test."""
    for key in list(os.environ):
        if key.startswith("QUERYLENS_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
