"""Tests for logger setup."""

from __future__ import annotations

import logging

from src.transform.log import LEVEL_ENV, setup_logging


def _own_handlers(logger):
    return [h for h in logger.handlers if getattr(h, "_transform_handler", False)]


def test_repeated_setup_keeps_one_handler():
    setup_logging(logging.INFO, name="transform-test-a")
    logger = setup_logging(logging.DEBUG, name="transform-test-a")
    assert len(_own_handlers(logger)) == 1
    assert logger.level == logging.DEBUG


def test_environment_overrides_level(monkeypatch):
    monkeypatch.setenv(LEVEL_ENV, "warning")
    logger = setup_logging(logging.DEBUG, name="transform-test-b")
    assert logger.level == logging.WARNING


def test_unknown_environment_level_is_ignored(monkeypatch):
    monkeypatch.setenv(LEVEL_ENV, "chatty")
    logger = setup_logging(logging.ERROR, name="transform-test-c")
    assert logger.level == logging.ERROR
