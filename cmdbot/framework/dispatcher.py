"""
cmdbot/framework/dispatcher.py

受信したインタラクションを登録済みコマンドに振り分ける
検索 → 実行場所 → 権限 → 機能 → カスタム検証 → 実行 の順に判定し、最初の失敗で打ち切る
"""

import asyncio
import logging
from typing import List, Optional

import discord

from cmdbot.config import ConfigManager
from cmdbot.errors import (
    ContextError,
    CustomValidationFailed,
    DispatchOutcome,
    DispatchRejected,
    FeatureDisabled,
    GateRejected,
    HandlerExecutionError,
    NotFoundError,
    PermissionDenied,
)
from cmdbot.framework.command_base import CommandContext, CommandRegistry, RegisteredCommand
from cmdbot.utils import has_responded, interaction_command_name, resolve_member, send_failure

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "コマンドの実行中にエラーが発生しました。"

# Discordの応答期限（3秒）より短く設定する
DEFAULT_AUTOCOMPLETE_TIMEOUT = 2.5


def missing_permissions(command: RegisteredCommand, member: discord.Member) -> List[str]:
    """メンバーが持っていない必要権限を名前順に返す"""
    granted = member.guild_permissions
    return [name for name in sorted(command.metadata.required_permissions) if not getattr(granted, name, False)]


def disabled_features(command: RegisteredCommand, config: ConfigManager) -> List[str]:
    """必要機能のうち現在無効なものを宣言順に返す"""
    enabled = config.enabled_features()
    return [feature for feature in command.metadata.required_features if feature not in enabled]


class CommandDispatcher:
    """
    コマンドのディスパッチャ
    レジストリと設定は外部から注入する
    """

    def __init__(
        self,
        registry: CommandRegistry,
        config: ConfigManager,
        autocomplete_timeout: float = DEFAULT_AUTOCOMPLETE_TIMEOUT,
    ):
        self.registry = registry
        self.config = config
        self.autocomplete_timeout = autocomplete_timeout

    def _lookup(self, name: Optional[str]) -> RegisteredCommand:
        command = self.registry.lookup(name)
        if command is None:
            raise NotFoundError(name)
        return command

    async def _run_gates(self, command: RegisteredCommand, context: CommandContext) -> None:
        """権限・機能・カスタム検証のゲート（失敗時は GateRejected を送出）"""
        member = resolve_member(context.interaction)

        # メンバーでない実行者（DM）には権限ゲートを適用しない
        if member is not None and command.metadata.required_permissions:
            missing = missing_permissions(command, member)
            if missing:
                raise PermissionDenied(missing)

        if command.metadata.required_features:
            disabled = disabled_features(command, self.config)
            if disabled:
                raise FeatureDisabled(disabled)

        if not await command.instance.validate(context):
            raise CustomValidationFailed()

    async def execute_command(self, name: Optional[str], interaction: discord.Interaction) -> DispatchOutcome:
        """
        コマンドを実行する
        例外は外部に送出せず、終端状態を返す

        Args:
            name: コマンド名
            interaction: Discordインタラクション

        Returns:
            DispatchOutcome: ディスパッチの終端状態
        """
        try:
            command = self._lookup(name)
            if resolve_member(interaction) is None and not command.metadata.dm_permission:
                raise ContextError(command.metadata.name)
        except DispatchRejected as e:
            logger.info(f"/{name} rejected for {interaction.user}: {e.outcome.value}")
            try:
                await send_failure(interaction, e.reason)
            except Exception as send_error:
                logger.error(f"Failed to send rejection for /{name}: {send_error}", exc_info=send_error)
            return e.outcome

        logger.info(f"/{name} invoked by {interaction.user}")
        context = CommandContext(interaction=interaction, config=self.config)

        try:
            try:
                await self._run_gates(command, context)
            except GateRejected as e:
                logger.info(f"/{name} rejected for {interaction.user}: {e.outcome.value} ({e.reason})")
                await command.instance.on_validation_failure(context, e.reason)
                return e.outcome

            await command.instance.execute(context)

        except Exception as e:
            error = HandlerExecutionError(command.metadata.name, e)
            logger.error(str(error), exc_info=e)

            if not has_responded(interaction):
                try:
                    await send_failure(interaction, GENERIC_FAILURE_MESSAGE)
                except Exception as send_error:
                    logger.error(f"Failed to send failure message for /{name}: {send_error}")
            return DispatchOutcome.FAILED

        logger.info(f"/{name} completed successfully for {interaction.user}")
        return DispatchOutcome.COMPLETED

    async def handle_autocomplete(self, interaction: discord.Interaction) -> bool:
        """
        オートコンプリート要求を処理する
        対応するフックがなければ何もしない。失敗はログのみで、実行者には伝えない

        Returns:
            bool: フックが正常に完了した場合 True
        """
        name = interaction_command_name(interaction)
        command = self.registry.lookup(name)
        hook = getattr(command.instance, "handle_autocomplete", None) if command else None
        if hook is None:
            return False

        context = CommandContext(interaction=interaction, config=self.config)
        try:
            await asyncio.wait_for(hook(context), timeout=self.autocomplete_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Autocomplete for /{name} timed out after {self.autocomplete_timeout}s")
        except Exception as e:
            logger.error(f"Error handling autocomplete for /{name}: {e}", exc_info=e)

        # 期限切れにならないよう空の候補で応答しておく
        if not has_responded(interaction):
            try:
                await interaction.response.autocomplete([])
            except Exception as e:
                logger.error(f"Failed to send empty autocomplete response for /{name}: {e}")
        return False
