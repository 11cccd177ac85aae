"""
cmdbot/errors.py

アプリケーション固有の例外クラス
登録時エラー、ディスパッチ時の拒否、実行時エラーを分類する
"""

from enum import Enum
from typing import Iterable, Optional


class DispatchOutcome(str, Enum):
    """ディスパッチ1回分の終端状態"""
    COMPLETED = "completed"
    REJECTED_UNKNOWN = "rejected-unknown"
    REJECTED_CONTEXT = "rejected-context"
    REJECTED_PERMISSION = "rejected-permission"
    REJECTED_FEATURE = "rejected-feature"
    REJECTED_CUSTOM = "rejected-custom"
    FAILED = "failed"


class BotError(Exception):
    """
    Botアプリケーションの基底例外クラス
    すべてのBot固有エラーはこのクラスを継承する
    """
    pass


class ConfigError(BotError):
    """設定ファイルや環境変数の不備で発生"""
    pass


class PublishError(BotError):
    """スラッシュコマンドのDiscordへの登録に失敗した場合に発生"""
    pass


# --- 登録時エラー ---

class RegistrationError(BotError):
    """コマンド登録時のエラー（対象コマンドの登録のみが失敗する）"""
    pass


class MissingMetadataError(RegistrationError):
    """コマンド定義にメタデータが付与されていない"""

    def __init__(self, definition):
        self.definition = definition
        name = getattr(definition, "__name__", repr(definition))
        super().__init__(f"Command {name} is missing command metadata")


class InvalidCommandMetadataError(RegistrationError):
    """メタデータの内容がDiscordのスキーマ制約に違反している"""
    pass


class UnsupportedOptionAttributeError(InvalidCommandMetadataError):
    """オプションの型が対応していない属性（choices, autocomplete等）が指定された"""

    def __init__(self, option_name: str, attribute: str, option_type):
        self.option_name = option_name
        self.attribute = attribute
        self.option_type = option_type
        type_name = getattr(option_type, "name", option_type)
        super().__init__(
            f"Option '{option_name}' of type {type_name} does not support '{attribute}'"
        )


# --- ディスパッチ時エラー ---

class DispatchRejected(BotError):
    """
    ディスパッチがゲートで打ち切られたことを表す基底クラス
    reason はユーザーに表示してよい文字列
    """
    outcome: DispatchOutcome = DispatchOutcome.FAILED

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class NotFoundError(DispatchRejected):
    outcome = DispatchOutcome.REJECTED_UNKNOWN

    def __init__(self, command_name: Optional[str]):
        self.command_name = command_name
        super().__init__("コマンドが見つかりません。")


class ContextError(DispatchRejected):
    outcome = DispatchOutcome.REJECTED_CONTEXT

    def __init__(self, command_name: str):
        self.command_name = command_name
        super().__init__("このコマンドはサーバー内でのみ使用できます。")


class GateRejected(DispatchRejected):
    """
    権限・機能・カスタム検証のゲートによる拒否
    コマンドの拒否コールバック（on_validation_failure）でユーザーに通知される
    """
    pass


class PermissionDenied(GateRejected):
    outcome = DispatchOutcome.REJECTED_PERMISSION

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(f"次の権限が不足しています: {', '.join(self.missing)}")


class FeatureDisabled(GateRejected):
    outcome = DispatchOutcome.REJECTED_FEATURE

    def __init__(self, disabled: Iterable[str]):
        self.disabled = list(disabled)
        super().__init__(f"次の機能が無効になっています: {', '.join(self.disabled)}")


class CustomValidationFailed(GateRejected):
    outcome = DispatchOutcome.REJECTED_CUSTOM

    def __init__(self, reason: str = "コマンドの検証に失敗しました。"):
        super().__init__(reason)


class HandlerExecutionError(BotError):
    """
    コマンド実行中に捕捉されなかった例外
    詳細はログにのみ記録し、ユーザーには汎用メッセージだけを返す
    """

    def __init__(self, command_name: str, original: BaseException):
        self.command_name = command_name
        self.original = original
        super().__init__(f"Error executing command {command_name}: {original!r}")
