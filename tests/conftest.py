"""
Shared pytest fixtures for the credvault test suite.

Autouse fixtures below isolate tests from the live environment:
  - CREDVAULT_* variables -> removed   (no user overrides leak into tests)
  - Config singleton      -> reset     (each test loads its own config)
  - credvault logger      -> restored  (CLI runs install their own handlers)
"""

import logging
import os

import pytest

from credvault.core.config import VaultConfig
from credvault.core.crypto.aes_gcm import AesGcmCipher
from credvault.db.credential_store import CredentialStore


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    for name in list(os.environ):
        if name.startswith("CREDVAULT_"):
            monkeypatch.delenv(name, raising=False)

    VaultConfig.reset_instance()
    yield
    VaultConfig.reset_instance()


@pytest.fixture(autouse=True)
def _restore_package_logger():
    logger = logging.getLogger("credvault")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate

    yield

    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def key():
    return AesGcmCipher.generate_key()


@pytest.fixture
def other_key():
    return AesGcmCipher.generate_key()


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "store.db"


@pytest.fixture
def store(store_path):
    with CredentialStore.open(store_path) as opened:
        yield opened
