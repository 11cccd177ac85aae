"""
cmdbot/framework/metadata.py

コマンドの宣言的メタデータ（名前、説明、必要権限、必要機能、オプション）の定義と取得
"""

from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, Iterable, NamedTuple, Optional, Tuple, Union

import discord
from discord import app_commands

from cmdbot.errors import MissingMetadataError

ChoiceValue = Union[str, int, float]

# クラスに付与するメタデータ属性名
METADATA_ATTR = "__command_metadata__"

# default_member_permissions に指定すると「制限なし」を明示する
NO_DEFAULT_PERMISSIONS = "none"


def _normalize_choice(choice) -> Tuple[str, ChoiceValue]:
    if isinstance(choice, app_commands.Choice):
        return (choice.name, choice.value)
    label, value = choice
    return (str(label), value)


@dataclass(frozen=True)
class OptionSpec:
    """
    スラッシュコマンドのオプション定義
    None の属性は「未指定」として扱い、スキーマには出力しない
    """
    name: str
    description: str
    type: discord.AppCommandOptionType
    required: bool = False
    choices: Optional[Tuple[Tuple[str, ChoiceValue], ...]] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    autocomplete: Optional[bool] = None
    channel_types: Optional[Tuple[discord.ChannelType, ...]] = None

    def __post_init__(self):
        # frozen のため object.__setattr__ で正規化する
        if self.choices is not None:
            object.__setattr__(self, "choices", tuple(_normalize_choice(c) for c in self.choices))
        if self.channel_types is not None:
            object.__setattr__(self, "channel_types", tuple(self.channel_types))


@dataclass(frozen=True)
class CommandMetadata:
    """
    コマンドのメタデータ
    name はレジストリ内で一意のキー。登録後は変更しない
    """
    name: str
    description: str
    required_permissions: FrozenSet[str] = field(default_factory=frozenset)
    required_features: Tuple[str, ...] = ()
    options: Tuple[OptionSpec, ...] = ()
    default_member_permissions: Union[int, str, None] = None
    dm_permission: bool = False

    def __post_init__(self):
        object.__setattr__(self, "required_permissions", frozenset(self.required_permissions or ()))
        # 機能IDは拒否理由の表示順を保つためタプルで保持（重複は除去）
        features = tuple(str(getattr(f, "value", f)) for f in (self.required_features or ()))
        object.__setattr__(self, "required_features", tuple(dict.fromkeys(features)))
        object.__setattr__(self, "options", tuple(self.options or ()))


class CommandDefinition(NamedTuple):
    """ハンドラを生成するファクトリとメタデータの組"""
    factory: Callable[[], Any]
    metadata: CommandMetadata


def define_command(factory: Callable[[], Any], metadata: CommandMetadata) -> CommandDefinition:
    """ファクトリとメタデータからコマンド定義を作成"""
    return CommandDefinition(factory, metadata)


def command(
    name: str,
    description: str,
    *,
    permissions: Iterable[str] = (),
    features: Iterable[Any] = (),
    options: Iterable[OptionSpec] = (),
    default_member_permissions: Union[int, str, None] = None,
    dm_permission: bool = False,
):
    """
    コマンドデコレータ
    クラス自身にメタデータを付与し、そのままレジストリに登録できるようにする

    Args:
        name: コマンド名
        description: コマンドの説明
        permissions: 実行に必要な権限（discord.Permissions のフラグ名）
        features: 実行に必要な機能ID
        options: オプション定義
        default_member_permissions: 既定のメンバー権限（None で必要権限から算出）
        dm_permission: DMでの使用を許可するか
    """
    metadata = CommandMetadata(
        name=name,
        description=description,
        required_permissions=frozenset(permissions),
        required_features=tuple(features),
        options=tuple(options),
        default_member_permissions=default_member_permissions,
        dm_permission=dm_permission,
    )

    def decorator(cls):
        setattr(cls, METADATA_ATTR, metadata)
        return cls
    return decorator


def get_command_metadata(definition) -> CommandMetadata:
    """
    コマンド定義からメタデータを取り出す

    Args:
        definition: CommandDefinition または @command を付与したクラス

    Returns:
        CommandMetadata

    Raises:
        MissingMetadataError: メタデータが付与されていない場合
    """
    if isinstance(definition, CommandDefinition):
        metadata = definition.metadata
    else:
        # 親クラスのメタデータは継承しない
        metadata = vars(definition).get(METADATA_ATTR) if isinstance(definition, type) else None

    if not isinstance(metadata, CommandMetadata):
        raise MissingMetadataError(definition)
    return metadata


def get_command_factory(definition) -> Callable[[], Any]:
    if isinstance(definition, CommandDefinition):
        return definition.factory
    return definition
