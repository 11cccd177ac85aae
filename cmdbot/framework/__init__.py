"""
cmdbot/framework/__init__.py

コマンドフレームワークのパッケージ初期化
"""

from .metadata import (
    CommandDefinition,
    CommandMetadata,
    OptionSpec,
    command,
    define_command,
    get_command_metadata,
)
from .schema import build_option, build_schema, derive_default_member_permissions
from .command_base import BaseCommand, CommandContext, CommandRegistry, RegisteredCommand
from .dispatcher import CommandDispatcher
from .publisher import CommandPublisher

__all__ = [
    'BaseCommand',
    'CommandContext',
    'CommandDefinition',
    'CommandDispatcher',
    'CommandMetadata',
    'CommandPublisher',
    'CommandRegistry',
    'OptionSpec',
    'RegisteredCommand',
    'build_option',
    'build_schema',
    'command',
    'define_command',
    'derive_default_member_permissions',
    'get_command_metadata',
]
