"""
utils.py

インタラクションへの応答と、インタラクションからの情報取得を行うユーティリティ関数群。
"""

from typing import Optional

import discord

# 失敗を示すメッセージの接頭辞
FAILURE_MARKER = "❌"


def has_responded(interaction: discord.Interaction) -> bool:
    """
    インタラクションに既に応答（返信または defer）済みかを判定する。

    Args:
        interaction: Discord インタラクション

    Returns:
        True: 応答済み
        False: 未応答
    """
    return interaction.response.is_done()


async def send_ephemeral(interaction: discord.Interaction, content: str):
    """
    本人にのみ見えるメッセージを送信する。
    応答済みの場合はフォローアップとして送信する。
    """
    if has_responded(interaction):
        return await interaction.followup.send(content, ephemeral=True)
    return await interaction.response.send_message(content, ephemeral=True)


async def send_failure(interaction: discord.Interaction, reason: str):
    """失敗マーカー付きのメッセージを本人にのみ送信する。"""
    return await send_ephemeral(interaction, f"{FAILURE_MARKER} {reason}")


def interaction_command_name(interaction: discord.Interaction) -> Optional[str]:
    """インタラクションのペイロードからコマンド名を取得する。"""
    data = interaction.data or {}
    return data.get("name")


def resolve_member(interaction: discord.Interaction) -> Optional[discord.Member]:
    """
    実行者がサーバーのメンバーであればそのメンバーを返す。
    DM からの実行など、メンバーでない場合は None。
    """
    user = interaction.user
    if isinstance(user, discord.Member):
        return user
    return None


def get_option_value(interaction: discord.Interaction, name: str, default=None):
    """
    インタラクションのペイロードからオプション値を取得する。

    Args:
        interaction: Discord インタラクション
        name: オプション名
        default: 未指定時の値

    Returns:
        オプションの値（ユーザー等のオプションはIDの文字列）
    """
    for option in (interaction.data or {}).get("options", []):
        if option.get("name") == name:
            return option.get("value", default)
    return default


def get_focused_option(interaction: discord.Interaction) -> Optional[dict]:
    """オートコンプリート要求で入力中のオプションを返す。"""
    for option in (interaction.data or {}).get("options", []):
        if option.get("focused"):
            return option
    return None
