"""
cmdbot/commands/general_commands.py

一般コマンドの実装
Botの応答確認、ユーザー情報の表示を提供
"""

import logging

import discord

from cmdbot.config import Feature
from cmdbot.framework import BaseCommand, CommandContext, CommandRegistry, OptionSpec, command
from cmdbot.utils import get_option_value, send_ephemeral

logger = logging.getLogger(__name__)


@command("ping", "Botが応答するかを確認します", dm_permission=True)
class PingCommand(BaseCommand):
    """Botの応答確認コマンド"""

    async def execute(self, context: CommandContext) -> None:
        await context.interaction.response.send_message("Pong!")


@command(
    "whois",
    "サーバーメンバーの情報を表示します",
    features=[Feature.READ_USER],
    options=[
        OptionSpec("user", "対象のユーザー", discord.AppCommandOptionType.user, required=True),
    ],
)
class WhoisCommand(BaseCommand):
    """
    メンバー情報の表示コマンド
    read:user 機能が有効な場合のみ使用可能
    """

    async def execute(self, context: CommandContext) -> None:
        """
        メンバー情報表示の実行処理

        Args:
            context: 実行コンテキスト
        """
        interaction = context.interaction
        user_id = int(get_option_value(interaction, "user"))

        member = interaction.guild.get_member(user_id) if interaction.guild else None
        if member is None:
            await send_ephemeral(interaction, "⚠️ 対象ユーザーが見つかりません。")
            logger.warning(f"whois failed: member {user_id} not found")
            return

        joined = member.joined_at.strftime("%Y-%m-%d") if member.joined_at else "不明"
        roles = [role.name for role in member.roles if not role.is_default()]

        lines = [
            f"👤 **{member.display_name}** (`{member.id}`)",
            f"アカウント作成日: {member.created_at.strftime('%Y-%m-%d')}",
            f"サーバー参加日: {joined}",
            f"ロール: {', '.join(roles) if roles else 'なし'}",
        ]
        await send_ephemeral(interaction, "\n".join(lines))


def setup_general_commands(registry: CommandRegistry):
    """
    一般コマンドをコマンドレジストリに登録

    Args:
        registry: コマンドレジストリインスタンス

    Returns:
        登録に失敗した (定義, 例外) のリスト
    """
    failures = registry.register_batch([PingCommand, WhoisCommand])

    logger.debug("General commands registered to framework")
    return failures
