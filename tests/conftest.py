"""
Shared pytest fixtures for acrd tests.

Provides a sample Python module on disk, an isolated configuration file and
a default engine bound to it.
"""

from pathlib import Path

import pytest

from acrd.config import AcrConfig, ConfigManager
from acrd.engine.python_engine import PythonEngine

SAMPLE_SOURCE = '''import os
import os.path as osp
from collections import OrderedDict

LIMIT = 10
names: list = []


def greet(name, punctuation="!"):
    message = "hello " + name
    return message + punctuation


def greeting_count() -> int:
    return len(names)


class Greeter:
    default = "hi"

    def say(self, name):
        return greet(name)


greet("world")
'''


@pytest.fixture
def sample_module(tmp_path: Path) -> Path:
    """Small Python module with functions, a class, imports and globals."""
    path = tmp_path / "sample.py"
    path.write_text(SAMPLE_SOURCE)
    return path


@pytest.fixture
def config_manager(tmp_path: Path) -> ConfigManager:
    """ConfigManager writing to a temporary file instead of ~/.config."""
    manager = ConfigManager(tmp_path / "config" / "config.json")
    manager.load()
    return manager


@pytest.fixture
def engine(config_manager: ConfigManager) -> PythonEngine:
    return PythonEngine(config_manager.config)


@pytest.fixture
def default_config() -> AcrConfig:
    return AcrConfig()
