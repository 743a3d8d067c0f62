"""Tests for importable runtime entrypoint modules."""

from __future__ import annotations

import importlib
import logging

import pytest


def test_import_mdloader_dunder_main_module(monkeypatch: pytest.MonkeyPatch) -> None:
    """Verify the ``python -m`` entrypoint module can be imported."""
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: None)

    module = importlib.reload(importlib.import_module("mdloader.__main__"))

    assert callable(module.main)
