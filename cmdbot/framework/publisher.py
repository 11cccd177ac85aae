"""
cmdbot/framework/publisher.py

スラッシュコマンドのスキーマをDiscordに一括登録（PUT）する
"""

import copy
import logging
from typing import Any, Dict, List, Optional

import discord

from cmdbot.errors import PublishError

logger = logging.getLogger(__name__)


class CommandPublisher:
    """
    コマンドスキーマの公開を担当するクラス
    全体（グローバル）またはサーバー単位で、登録済みコマンドを丸ごと置き換える
    """

    def __init__(self, client: discord.Client):
        self.client = client
        # スコープ -> (送信したスキーマ, 応答)
        self._published: Dict[Optional[int], tuple] = {}

    async def publish(
        self,
        schemas: List[Dict[str, Any]],
        guild_id: Optional[int] = None,
        force: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        コマンドスキーマを公開

        Args:
            schemas: build_schemas() で生成したスキーマ
            guild_id: 対象サーバーID（None なら全体）
            force: 前回と同一内容でも送信する

        Returns:
            Discordが返した登録済みコマンド一覧

        Raises:
            PublishError: ログイン前、または送信に失敗した場合
        """
        application_id = self.client.application_id
        if application_id is None:
            raise PublishError("Client must be logged in before publishing slash commands")

        scope = guild_id or None
        scope_label = f"guild {scope}" if scope else "global"

        previous = self._published.get(scope)
        if not force and previous is not None and previous[0] == schemas:
            logger.debug(f"Slash commands unchanged for {scope_label}, skipping publish")
            return previous[1]

        logger.info(f"Started refreshing {len(schemas)} application (/) commands ({scope_label})")

        try:
            if scope:
                data = await self.client.http.bulk_upsert_guild_commands(application_id, scope, payload=schemas)
            else:
                data = await self.client.http.bulk_upsert_global_commands(application_id, payload=schemas)
        except discord.HTTPException as e:
            logger.error(f"Error publishing slash commands ({scope_label}): {e}")
            raise PublishError(f"Failed to publish slash commands ({scope_label}): {e}") from e

        self._published[scope] = (copy.deepcopy(schemas), data)
        logger.info(f"Successfully reloaded {len(data)} application (/) commands ({scope_label})")
        return data
