"""Test configuration for pytest."""

import logging
import os
import pytest


@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests to be minimal."""
    # Set environment variable to ensure minimal logging during tests
    os.environ['PHOTOCULL_LOG_LEVEL'] = 'WARNING'

    # Also configure root logger to be quiet
    logging.getLogger().setLevel(logging.WARNING)

    # Hashing and the CLI report progress at INFO
    for logger_name in ['photocull.similarity.hash', 'photocull.cli']:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


@pytest.fixture(autouse=True)
def clean_photocull_env(monkeypatch):
    """Keep PHOTOCULL_* settings overrides from leaking into tests."""
    for name in list(os.environ):
        if name.startswith('PHOTOCULL_') and name != 'PHOTOCULL_LOG_LEVEL':
            monkeypatch.delenv(name, raising=False)
