import importlib
import logging

import pytest

import paillier_tally.main as main


@pytest.mark.anyio
async def test_lowercase_log_level_is_accepted(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    try:
        reloaded = importlib.reload(main)
        assert reloaded.LOG_LEVEL == "DEBUG"
        assert logging.getLevelName(reloaded.LOG_LEVEL) == logging.DEBUG
    finally:
        monkeypatch.delenv("LOG_LEVEL")
        importlib.reload(main)


@pytest.mark.anyio
async def test_default_log_level(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    try:
        assert importlib.reload(main).LOG_LEVEL == "INFO"
    finally:
        importlib.reload(main)
