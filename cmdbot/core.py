"""
core.py

Discord Botの中核となる統合管理クラス
設定読み込み、ログ初期化、コマンド登録、コマンド公開、イベント振り分けを一元化
"""

import asyncio
import logging
import signal

import discord

from cmdbot.commands.feature_commands import setup_feature_commands
from cmdbot.commands.general_commands import setup_general_commands
from cmdbot.config import CONFIG_PATH, ConfigManager
from cmdbot.errors import ConfigError, PublishError
from cmdbot.framework import CommandDispatcher, CommandPublisher, CommandRegistry
from cmdbot.logging_config import setup_logging
from cmdbot.utils import interaction_command_name


class DiscordBot:
    """
    Discord Botの統合管理クラス
    アプリケーション全体のライフサイクルを管理
    """

    def __init__(self, config_path: str = CONFIG_PATH):
        """
        Botインスタンスの初期化

        Args:
            config_path: 設定ファイルのパス
        """
        self.config_path = config_path
        self.config = None
        self.logger = None
        self._commands_published = False

        # 初期化の実行順序は依存関係に基づく
        self._load_config()
        self._setup_logging()
        self._setup_command_registry()
        self._setup_discord_client()

    def _load_config(self) -> None:
        """
        設定ファイルの読み込みと環境変数による上書き処理
        デフォルト値 → YAMLファイル → 環境変数の順で優先度が高い
        """
        self.config = ConfigManager.load(self.config_path)

    def _setup_logging(self) -> None:
        """ログシステムの初期化"""
        setup_logging(
            console_level=self.config.get("CONSOLE_LOG_LEVEL"),
            file_level=self.config.get("FILE_LOG_LEVEL"),
            log_dir=self.config.get("LOG_DIR"),
        )
        self.logger = logging.getLogger(__name__)

    def _setup_command_registry(self) -> None:
        """
        コマンドレジストリの初期化と各コマンドモジュールからの登録
        イベントループ開始前に完了させ、以降は変更しない
        """
        self.command_registry = CommandRegistry()

        failures = []
        failures += setup_general_commands(self.command_registry)
        failures += setup_feature_commands(self.command_registry)

        if failures:
            self.logger.warning(f"{len(failures)} command(s) failed to register")
        self.logger.debug(f"Command registry initialized with {len(self.command_registry)} commands")

    def _setup_discord_client(self) -> None:
        """
        Discordクライアントとイベントハンドラの設定
        """
        # 必要なインテントの設定
        intents = discord.Intents.default()
        intents.members = True

        self.client = discord.Client(intents=intents)
        self.publisher = CommandPublisher(self.client)
        self.dispatcher = CommandDispatcher(
            self.command_registry,
            self.config,
            autocomplete_timeout=float(self.config.get("AUTOCOMPLETE_TIMEOUT")),
        )

        # Bot準備完了イベントハンドラ
        @self.client.event
        async def on_ready():
            # 再接続時に on_ready が再発火しても公開は一度だけ
            if not self._commands_published:
                await self._publish_commands()
            self.logger.info(f"Bot logged in as {self.client.user}")

        # インタラクションの振り分け
        @self.client.event
        async def on_interaction(interaction: discord.Interaction):
            await self.route_interaction(interaction)

        self.logger.debug("Discord client configured")

    async def _publish_commands(self) -> None:
        """
        登録済みコマンドをDiscordに公開
        GUILD_ID が設定されていればそのサーバーのみに公開する
        """
        guild_id = self.config.get("GUILD_ID") or None
        try:
            await self.publisher.publish(self.command_registry.build_schemas(), guild_id=guild_id)
            self._commands_published = True
        except PublishError as e:
            self.logger.error(f"Slash command publication failed: {e}")

    async def route_interaction(self, interaction: discord.Interaction) -> None:
        """インタラクションの種類に応じてディスパッチャに渡す"""
        if interaction.type == discord.InteractionType.application_command:
            await self.dispatcher.execute_command(interaction_command_name(interaction), interaction)
        elif interaction.type == discord.InteractionType.autocomplete:
            await self.dispatcher.handle_autocomplete(interaction)

    async def _shutdown(self) -> None:
        """
        Bot終了時のクリーンアップ処理
        """
        self.logger.info("Shutting down bot...")
        await self.client.close()
        self.logger.info("Bot shutdown complete")

    def _handle_exit(self, *_) -> None:
        """
        システムシグナル受信時の終了処理
        """
        asyncio.create_task(self._shutdown())

    def run(self) -> int:
        """
        Botの実行開始

        Returns:
            int: 終了コード（0=正常終了、1=異常終了）
        """
        try:
            # システムシグナルのハンドラ登録
            signal.signal(signal.SIGTERM, self._handle_exit)
            signal.signal(signal.SIGINT, self._handle_exit)

            self.logger.debug("Starting Discord bot...")
            # ログ設定は setup_logging で済ませているため discord.py 側のハンドラは使わない
            self.client.run(self.config.get("DISCORD_TOKEN"), log_handler=None)

        except discord.LoginFailure as e:
            self.logger.critical(f"Login failed, DISCORD_TOKEN is invalid: {e}")
            return 1
        except Exception as e:
            self.logger.critical(f"Critical error: {e}", exc_info=True)
            return 1

        return 0


def run_bot() -> int:
    """
    Bot起動のエントリーポイント関数
    main.pyから呼び出される
    """
    try:
        bot = DiscordBot()
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1
    return bot.run()
