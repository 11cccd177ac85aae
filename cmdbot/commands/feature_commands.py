"""
cmdbot/commands/feature_commands.py

機能フラグ管理コマンドの実装
機能の一覧表示、有効化・無効化を提供
"""

import asyncio
import logging

import discord
from discord import app_commands

from cmdbot.config import Feature
from cmdbot.framework import BaseCommand, CommandContext, CommandRegistry, OptionSpec, command
from cmdbot.utils import get_focused_option, get_option_value, send_ephemeral

logger = logging.getLogger(__name__)

KNOWN_FEATURES = [feature.value for feature in Feature]

# オートコンプリート候補の上限（Discordの制約）
MAX_AUTOCOMPLETE_CHOICES = 25


@command(
    "features",
    "機能の有効/無効を一覧表示します",
    permissions=["manage_guild"],
    features=[Feature.READ_CONFIG],
)
class FeaturesCommand(BaseCommand):
    """機能フラグの一覧表示コマンド"""

    async def execute(self, context: CommandContext) -> None:
        enabled = context.config.enabled_features()
        # 既知の機能に加え、設定ファイルにのみ存在する機能も表示する
        names = KNOWN_FEATURES + sorted(enabled - set(KNOWN_FEATURES))

        lines = ["📋 機能一覧"]
        for name in names:
            mark = "✅" if name in enabled else "⬜"
            lines.append(f"{mark} `{name}`")
        await send_ephemeral(context.interaction, "\n".join(lines))


@command(
    "feature",
    "機能を有効化または無効化します（管理者のみ）",
    permissions=["administrator"],
    features=[Feature.UPDATE_CONFIG],
    options=[
        OptionSpec(
            "action",
            "操作",
            discord.AppCommandOptionType.string,
            required=True,
            choices=[
                app_commands.Choice(name="有効化", value="enable"),
                app_commands.Choice(name="無効化", value="disable"),
            ],
        ),
        OptionSpec(
            "name",
            "対象の機能ID",
            discord.AppCommandOptionType.string,
            required=True,
            autocomplete=True,
        ),
    ],
)
class FeatureCommand(BaseCommand):
    """
    機能フラグの切り替えコマンド
    変更は設定ファイルに書き戻される
    """

    async def validate(self, context: CommandContext) -> bool:
        """未知の機能IDと不正な操作を拒否"""
        action = get_option_value(context.interaction, "action")
        name = get_option_value(context.interaction, "name")
        return action in ("enable", "disable") and name in KNOWN_FEATURES

    async def execute(self, context: CommandContext) -> None:
        """
        機能切り替えの実行処理

        Args:
            context: 実行コンテキスト
        """
        interaction = context.interaction
        action = get_option_value(interaction, "action")
        name = get_option_value(interaction, "name")

        # 設定ファイルへの書き戻しは別スレッドで行う
        if action == "enable":
            changed = await asyncio.to_thread(context.config.enable_feature, name)
            state = "有効"
        else:
            changed = await asyncio.to_thread(context.config.disable_feature, name)
            state = "無効"

        if changed:
            logger.info(f"Feature {name} set to {action} by {interaction.user}")
            await send_ephemeral(interaction, f"✅ `{name}` を{state}にしました。")
        else:
            await send_ephemeral(interaction, f"ℹ️ `{name}` は既に{state}です。")

    async def handle_autocomplete(self, context: CommandContext) -> None:
        """入力中の文字列に一致する機能IDを候補として返す"""
        focused = get_focused_option(context.interaction) or {}
        current = str(focused.get("value") or "").lower()

        choices = [
            app_commands.Choice(name=name, value=name)
            for name in KNOWN_FEATURES
            if current in name
        ]
        await context.interaction.response.autocomplete(choices[:MAX_AUTOCOMPLETE_CHOICES])


def setup_feature_commands(registry: CommandRegistry):
    """
    機能フラグ管理コマンドをコマンドレジストリに登録

    Args:
        registry: コマンドレジストリインスタンス

    Returns:
        登録に失敗した (定義, 例外) のリスト
    """
    failures = registry.register_batch([FeaturesCommand, FeatureCommand])

    logger.debug("Feature commands registered to framework")
    return failures
