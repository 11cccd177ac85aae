from collections.abc import Callable

import pytest

from cmdbot.config import ConfigManager
from cmdbot.framework import CommandDispatcher, CommandRegistry


@pytest.fixture
def config() -> ConfigManager:
    return ConfigManager({"DISCORD_TOKEN": "token", "FEATURES": ["read:config"]})


@pytest.fixture
def registry() -> CommandRegistry:
    return CommandRegistry()


@pytest.fixture
def dispatcher(registry: CommandRegistry, config: ConfigManager) -> CommandDispatcher:
    return CommandDispatcher(registry, config, autocomplete_timeout=0.2)


@pytest.fixture
def make_config() -> Callable[..., ConfigManager]:
    def _factory(*features: str, config_path=None) -> ConfigManager:
        return ConfigManager({"FEATURES": list(features)}, config_path=config_path)

    return _factory
