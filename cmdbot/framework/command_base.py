"""
cmdbot/framework/command_base.py

コマンドの基底クラスとコマンドレジストリ
メタデータの抽出、インスタンス生成、名前による検索、スキーマ生成を担当
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

import discord

from cmdbot.config import ConfigManager
from cmdbot.framework.metadata import CommandMetadata, get_command_factory, get_command_metadata
from cmdbot.framework.schema import build_schema
from cmdbot.utils import send_failure

logger = logging.getLogger(__name__)


@dataclass
class CommandContext:
    """ディスパッチ1回ごとに生成される実行コンテキスト"""
    interaction: discord.Interaction
    config: ConfigManager


class BaseCommand(ABC):
    """
    コマンドの基底クラス

    サブクラスは execute を実装する。
    validate と on_validation_failure は必要に応じて上書きする。
    オートコンプリートに対応する場合は handle_autocomplete(context) を定義する。
    """

    @abstractmethod
    async def execute(self, context: CommandContext) -> None:
        """実際のコマンド処理（サブクラスで実装）"""
        pass

    async def validate(self, context: CommandContext) -> bool:
        """カスタム検証（既定では常に成功）"""
        return True

    async def on_validation_failure(self, context: CommandContext, reason: str) -> None:
        """
        ゲートで拒否された場合の通知処理

        Args:
            context: 実行コンテキスト
            reason: ユーザーに表示する理由
        """
        await send_failure(context.interaction, reason)


class RegisteredCommand(NamedTuple):
    instance: Any
    metadata: CommandMetadata


class CommandRegistry:
    """
    コマンド名 → {インスタンス, メタデータ} の対応表

    起動時（イベントループ開始前）に構築し、以降は読み取り専用として扱う。
    同名のコマンドを再登録した場合は後勝ち（警告ログを出力）。
    """

    def __init__(self):
        self._commands: Dict[str, RegisteredCommand] = {}

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: str) -> bool:
        return name in self._commands

    def _resolve(self, definition) -> RegisteredCommand:
        metadata = get_command_metadata(definition)
        # スキーマ制約違反は登録時点で検出する
        build_schema(metadata)
        instance = get_command_factory(definition)()
        return RegisteredCommand(instance, metadata)

    def _store(self, command: RegisteredCommand) -> None:
        name = command.metadata.name
        if name in self._commands:
            logger.warning(f"Command /{name} is already registered; replacing previous definition")
        self._commands[name] = command
        logger.debug(f"Registered command: /{name}")

    def register(self, definition) -> RegisteredCommand:
        """
        コマンドを登録

        Args:
            definition: CommandDefinition または @command を付与したクラス

        Returns:
            RegisteredCommand

        Raises:
            MissingMetadataError: メタデータが付与されていない場合
            InvalidCommandMetadataError: メタデータがスキーマ制約に違反する場合
        """
        command = self._resolve(definition)
        self._store(command)
        return command

    def register_batch(self, definitions: Iterable, strict: bool = False) -> List[Tuple[Any, Exception]]:
        """
        複数のコマンドを順番に登録

        strict=False（既定）: 失敗した定義はログに記録して残りの登録を続行する。
        strict=True: 全定義を先に検証・生成し、1件でも失敗すれば何も登録せず例外を送出する。

        Returns:
            登録に失敗した (定義, 例外) のリスト（strict=True の場合は常に空）
        """
        definitions = list(definitions)

        if strict:
            resolved = [self._resolve(definition) for definition in definitions]
            for command in resolved:
                self._store(command)
            return []

        failures: List[Tuple[Any, Exception]] = []
        for definition in definitions:
            try:
                self.register(definition)
            except Exception as e:
                logger.error(f"Failed to register command {definition!r}: {e}")
                failures.append((definition, e))
        return failures

    def lookup(self, name: Optional[str]) -> Optional[RegisteredCommand]:
        """名前でコマンドを検索（見つからなければ None）"""
        if name is None:
            return None
        return self._commands.get(name)

    def list_all(self) -> List[RegisteredCommand]:
        """登録順のコマンド一覧"""
        return list(self._commands.values())

    def build_schemas(self) -> List[Dict[str, Any]]:
        """登録済みコマンドのスキーマを登録順に生成"""
        return [build_schema(command.metadata) for command in self._commands.values()]
