"""
cmdbot/logging_config.py

ロギング設定を一元管理するモジュール
"""

import logging
import logging.handlers
import os
from datetime import datetime


def setup_logging(console_level: str = "INFO", file_level: str = "DEBUG", log_dir: str = "logs"):
    """
    アプリケーション全体のロギング設定
    コンソール出力とファイル出力で異なるレベルに対応

    Args:
        console_level: コンソールのログレベル
        file_level: ファイルのログレベル
        log_dir: ログファイルの出力先

    Returns:
        logging.Logger: ルートロガー
    """
    console_level_num = getattr(logging, str(console_level).upper(), logging.INFO)
    file_level_num = getattr(logging, str(file_level).upper(), logging.DEBUG)

    os.makedirs(log_dir, exist_ok=True)

    # ルートロガーの設定（最も詳細なレベルに設定）
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # 既存ハンドラのクリア（重複防止）
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    detailed_formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    simple_formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s]: %(message)s",
        datefmt="%H:%M:%S"
    )

    # コンソール出力ハンドラ
    console = logging.StreamHandler()
    console.setFormatter(simple_formatter if console_level_num >= logging.INFO else detailed_formatter)
    console.setLevel(console_level_num)
    root_logger.addHandler(console)

    # ファイル出力ハンドラ（日付ごと、ローテーション機能付き）
    try:
        today = datetime.now().strftime("%Y-%m-%d")
        log_path = os.path.join(log_dir, f"bot-{today}.log")

        if os.access(log_dir, os.W_OK):
            file_handler = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=10485760,  # 10MB
                backupCount=5,
                encoding="utf-8"
            )
            file_handler.setFormatter(detailed_formatter)
            file_handler.setLevel(file_level_num)
            root_logger.addHandler(file_handler)
        else:
            root_logger.warning(f"No write permission to log directory: {log_dir}, console logging only")
    except OSError as e:
        root_logger.error(f"Failed to setup file logging: {e}")

    # 外部ライブラリのログレベル抑制
    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("discord.http").setLevel(logging.WARNING)
    logging.getLogger("discord.gateway").setLevel(logging.WARNING)

    root_logger.debug(f"Logging initialized - Console: {console_level}, File: {file_level}")
    return root_logger
