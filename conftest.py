"""
Root-level shared test fixtures.

Inherited by ``tests/`` and ``tenantvault/api/tests/``.
"""

from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Drop TENANTVAULT_* variables from the host environment so config defaults apply."""
    for key in [k for k in os.environ if k.startswith("TENANTVAULT_")]:
        monkeypatch.delenv(key, raising=False)
