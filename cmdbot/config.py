"""
cmdbot/config.py

設定ファイル（YAML）と環境変数から設定を読み込み、機能フラグを管理するモジュール
"""

import logging
import os
import threading
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

import yaml

from cmdbot.errors import ConfigError

logger = logging.getLogger(__name__)

# 環境変数からYAMLパスを取得、指定がなければデフォルト使用
CONFIG_PATH = os.getenv("CONFIG_PATH", "config.yaml")


class Feature(str, Enum):
    """既知の機能ID"""
    READ_USER = "read:user"
    READ_CONFIG = "read:config"
    UPDATE_CONFIG = "update:config"


DEFAULT_CONFIG: Dict[str, Any] = {
    "DISCORD_TOKEN": "",
    "GUILD_ID": 0,
    "FEATURES": [],
    "AUTOCOMPLETE_TIMEOUT": 2.5,
    "CONSOLE_LOG_LEVEL": "INFO",
    "FILE_LOG_LEVEL": "DEBUG",
    "LOG_DIR": "logs",
}

REQUIRED_KEYS = ["DISCORD_TOKEN"]


def _feature_id(feature) -> str:
    return str(getattr(feature, "value", feature))


def _parse_features(value) -> List[str]:
    """FEATURES の値（リストまたはカンマ区切り文字列）を機能IDのリストに変換"""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [_feature_id(f).strip() for f in value if _feature_id(f).strip()]


def _convert_env_value(current: Any, env_value: str) -> Any:
    # 既定値の型に合わせて変換
    if isinstance(current, list):
        return _parse_features(env_value)
    if isinstance(current, bool):
        return env_value.lower() in ("1", "true", "yes", "on")
    if isinstance(current, int) and env_value.isdigit():
        return int(env_value)
    if isinstance(current, float):
        try:
            return float(env_value)
        except ValueError:
            logger.warning(f"Ignoring non-numeric value for float setting: {env_value!r}")
            return current
    return env_value


class ConfigManager:
    """
    設定値と機能フラグへのアクセスを提供するクラス

    有効な機能の集合は frozenset で保持し、変更時は集合ごと差し替える。
    読み出し側は常に一貫したスナップショットを得る。
    書き込みはスレッドから呼ばれても直列化される。
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, config_path: Optional[str] = None):
        """
        Args:
            config: 設定値（既定値に上書きされる）
            config_path: 機能フラグと機能設定の変更を書き戻すYAMLファイル（None なら書き戻さない）
        """
        self.config_path = config_path
        self._write_lock = threading.Lock()
        self.config = dict(DEFAULT_CONFIG)
        if config:
            self.config.update(config)
        self._features: FrozenSet[str] = frozenset(_parse_features(self.config.get("FEATURES")))
        self.config["FEATURES"] = sorted(self._features)

    @classmethod
    def load(cls, config_path: str = CONFIG_PATH, required_keys: Iterable[str] = REQUIRED_KEYS) -> "ConfigManager":
        """
        設定ファイルの読み込みと環境変数による上書き処理
        デフォルト値 → YAMLファイル → 環境変数の順で優先度が高い

        Raises:
            ConfigError: 必須項目が欠けている場合
        """
        config = dict(DEFAULT_CONFIG)

        # YAMLファイルからの読み込み
        try:
            if os.path.exists(config_path):
                with open(config_path, "r", encoding="utf-8") as f:
                    yaml_config = yaml.safe_load(f)
                    if yaml_config:
                        config.update(yaml_config)
                logger.info(f"Configuration loaded from {config_path}")
            else:
                logger.warning(f"Configuration file {config_path} not found, using defaults")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load configuration file: {e}")

        # 環境変数による上書き（最優先）
        env_overrides = 0
        for key in list(config):
            env_value = os.getenv(key)
            if env_value:
                config[key] = _convert_env_value(DEFAULT_CONFIG.get(key, config[key]), env_value)
                env_overrides += 1

        if env_overrides > 0:
            logger.info(f"Configuration overridden by {env_overrides} environment variables")

        # 必須項目の検証
        missing_keys = [key for key in required_keys if not config.get(key)]
        if missing_keys:
            missing_str = ", ".join(missing_keys)
            raise ConfigError(f"Missing required configuration: {missing_str}")

        # GUILD_ID は整数（0 または未設定ならグローバル公開）
        try:
            config["GUILD_ID"] = int(config.get("GUILD_ID") or 0)
        except (TypeError, ValueError):
            raise ConfigError(f"GUILD_ID must be an integer, got {config.get('GUILD_ID')!r}")

        return cls(config, config_path=config_path)

    def get(self, key: str, default: Any = None) -> Any:
        """設定値を取得"""
        return self.config.get(key, default)

    def enabled_features(self) -> FrozenSet[str]:
        """有効な機能IDのスナップショットを返す"""
        return self._features

    def is_feature_enabled(self, feature) -> bool:
        """機能が有効かどうか"""
        return _feature_id(feature) in self._features

    def enable_feature(self, feature) -> bool:
        """
        機能を有効化し、設定ファイルに書き戻す

        Returns:
            bool: 状態が変化した場合 True
        """
        feature_id = _feature_id(feature)
        with self._write_lock:
            current = self._features
            if feature_id in current:
                return False
            self._replace_features(current | {feature_id})
        logger.info(f"Feature enabled: {feature_id}")
        return True

    def disable_feature(self, feature) -> bool:
        """
        機能を無効化し、設定ファイルに書き戻す

        Returns:
            bool: 状態が変化した場合 True
        """
        feature_id = _feature_id(feature)
        with self._write_lock:
            current = self._features
            if feature_id not in current:
                return False
            self._replace_features(current - {feature_id})
        logger.info(f"Feature disabled: {feature_id}")
        return True

    def get_feature_config(self, feature) -> Dict[str, Any]:
        """
        機能ごとの設定セクションを取得（機能IDをキーとする）

        Returns:
            dict: セクションのコピー（未設定なら空の辞書）
        """
        section = self.config.get(_feature_id(feature))
        return dict(section) if isinstance(section, dict) else {}

    def update_feature_config(self, feature, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        機能ごとの設定セクションを浅くマージし、設定ファイルに書き戻す

        Args:
            feature: 機能ID
            data: 上書きする項目

        Returns:
            dict: マージ後のセクション

        Raises:
            ConfigError: 書き戻しに失敗した場合（メモリ上の値は変更しない）
        """
        feature_id = _feature_id(feature)
        with self._write_lock:
            merged = self.get_feature_config(feature_id)
            merged.update(data)
            self._save_entries({feature_id: merged})
            self.config[feature_id] = merged
        logger.info(f"Feature config updated: {feature_id} (keys: {sorted(data)})")
        return dict(merged)

    def _replace_features(self, features: FrozenSet[str]) -> None:
        # 書き戻しに成功してから差し替える
        self._save_entries({"FEATURES": sorted(features)})
        self._features = frozenset(features)
        self.config["FEATURES"] = sorted(self._features)

    def _save_entries(self, entries: Dict[str, Any]) -> None:
        """
        指定した項目のみを設定ファイルに書き戻す
        ファイル内の他の項目は保持し、環境変数由来の値は書き込まない
        """
        if not self.config_path:
            return

        try:
            data: Dict[str, Any] = {}
            if os.path.exists(self.config_path):
                with open(self.config_path, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
            data.update(entries)
            with open(self.config_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to save configuration file: {e}")
            raise ConfigError(f"Failed to save configuration file {self.config_path}") from e

        logger.debug(f"Configuration saved to {self.config_path}")
