"""
cmdbot/framework/schema.py

CommandMetadata を Discord のアプリケーションコマンド形式（JSON）に変換する
入力に存在する属性のみを出力し、型に合わない属性は例外にする
"""

import re
from typing import Any, Dict, Iterable, List, Optional

import discord

from cmdbot.errors import InvalidCommandMetadataError, UnsupportedOptionAttributeError
from cmdbot.framework.metadata import NO_DEFAULT_PERMISSIONS, CommandMetadata, OptionSpec

OptionType = discord.AppCommandOptionType

# Discordの制約
NAME_PATTERN = re.compile(r"[-_\w]{1,32}")
MAX_DESCRIPTION_LENGTH = 100
MAX_OPTIONS = 25
MAX_CHOICES = 25

CHAT_INPUT_COMMAND = 1

SUPPORTED_OPTION_TYPES = frozenset({
    OptionType.string,
    OptionType.integer,
    OptionType.number,
    OptionType.boolean,
    OptionType.user,
    OptionType.channel,
    OptionType.role,
    OptionType.mentionable,
    OptionType.attachment,
})

CHOICE_TYPES = frozenset({OptionType.string, OptionType.integer, OptionType.number})
NUMERIC_TYPES = frozenset({OptionType.integer, OptionType.number})

# 属性名 -> 指定可能な型
_ATTRIBUTE_TYPES = {
    "choices": CHOICE_TYPES,
    "autocomplete": CHOICE_TYPES,
    "min_value": NUMERIC_TYPES,
    "max_value": NUMERIC_TYPES,
    "min_length": frozenset({OptionType.string}),
    "max_length": frozenset({OptionType.string}),
    "channel_types": frozenset({OptionType.channel}),
}


def _coerce_enum(enum_cls, value):
    # discord.py の列挙型は値からのみ生成できる
    if isinstance(value, enum_cls):
        return value
    return enum_cls(value)


def _validate_name(kind: str, name: str) -> None:
    if not isinstance(name, str) or not NAME_PATTERN.fullmatch(name) or name != name.lower():
        raise InvalidCommandMetadataError(
            f"Invalid {kind} name {name!r}: must be 1-32 lowercase characters"
        )


def _validate_description(kind: str, name: str, description: str) -> None:
    if not description or len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidCommandMetadataError(
            f"Invalid description for {kind} {name!r}: must be 1-{MAX_DESCRIPTION_LENGTH} characters"
        )


def derive_default_member_permissions(permissions: Iterable[str]) -> Optional[int]:
    """
    必要権限のビット値をORで合成する

    Args:
        permissions: discord.Permissions のフラグ名

    Returns:
        int: 合成したビットマスク（必要権限が空なら None）

    Raises:
        InvalidCommandMetadataError: 不明な権限名が含まれる場合
    """
    permissions = list(permissions)
    if not permissions:
        return None

    value = 0
    for name in permissions:
        bit = discord.Permissions.VALID_FLAGS.get(name)
        if bit is None:
            raise InvalidCommandMetadataError(f"Unknown permission flag: {name!r}")
        value |= bit
    return value


def _resolve_default_member_permissions(metadata: CommandMetadata) -> Optional[str]:
    explicit = metadata.default_member_permissions
    if explicit is None:
        derived = derive_default_member_permissions(sorted(metadata.required_permissions))
        return None if derived is None else str(derived)
    if explicit == NO_DEFAULT_PERMISSIONS:
        return None
    if isinstance(explicit, bool) or not isinstance(explicit, int) or explicit < 0:
        raise InvalidCommandMetadataError(
            f"default_member_permissions for {metadata.name!r} must be a bitmask or {NO_DEFAULT_PERMISSIONS!r}"
        )
    return str(explicit)


def build_option(option: OptionSpec) -> Dict[str, Any]:
    """
    OptionSpec を Discord のオプション形式に変換

    Raises:
        UnsupportedOptionAttributeError: 型に対応しない属性が指定された場合
        InvalidCommandMetadataError: 名前や説明、選択肢数が制約に違反する場合
    """
    _validate_name("option", option.name)
    _validate_description("option", option.name, option.description)

    try:
        option_type = _coerce_enum(OptionType, option.type)
    except ValueError:
        raise InvalidCommandMetadataError(f"Unknown option type for {option.name!r}: {option.type!r}")
    if option_type not in SUPPORTED_OPTION_TYPES:
        raise InvalidCommandMetadataError(
            f"Option {option.name!r} uses unsupported type {option_type.name}"
        )

    for attribute, allowed in _ATTRIBUTE_TYPES.items():
        if getattr(option, attribute) is not None and option_type not in allowed:
            raise UnsupportedOptionAttributeError(option.name, attribute, option_type)

    # 選択肢とオートコンプリートは併用できない
    if option.choices is not None and option.autocomplete:
        raise UnsupportedOptionAttributeError(option.name, "autocomplete", option_type)

    data: Dict[str, Any] = {
        "type": option_type.value,
        "name": option.name,
        "description": option.description,
        "required": bool(option.required),
    }

    if option.choices is not None:
        if len(option.choices) > MAX_CHOICES:
            raise InvalidCommandMetadataError(
                f"Option {option.name!r} has more than {MAX_CHOICES} choices"
            )
        data["choices"] = [{"name": label, "value": value} for label, value in option.choices]

    for attribute in ("min_value", "max_value", "min_length", "max_length"):
        value = getattr(option, attribute)
        if value is not None:
            data[attribute] = value

    if option.autocomplete is not None:
        data["autocomplete"] = bool(option.autocomplete)

    if option.channel_types is not None:
        data["channel_types"] = [_coerce_enum(discord.ChannelType, t).value for t in option.channel_types]

    return data


def build_schema(metadata: CommandMetadata) -> Dict[str, Any]:
    """
    メタデータからスラッシュコマンドのスキーマを生成（純粋関数）

    Args:
        metadata: コマンドのメタデータ

    Returns:
        dict: Discord API に送信するコマンド定義
    """
    _validate_name("command", metadata.name)
    _validate_description("command", metadata.name, metadata.description)

    if len(metadata.options) > MAX_OPTIONS:
        raise InvalidCommandMetadataError(
            f"Command {metadata.name!r} has more than {MAX_OPTIONS} options"
        )

    seen: set = set()
    options: List[Dict[str, Any]] = []
    for option in metadata.options:
        if option.name in seen:
            raise InvalidCommandMetadataError(
                f"Command {metadata.name!r} has duplicate option {option.name!r}"
            )
        seen.add(option.name)
        options.append(build_option(option))

    return {
        "type": CHAT_INPUT_COMMAND,
        "name": metadata.name,
        "description": metadata.description,
        "options": options,
        "default_member_permissions": _resolve_default_member_permissions(metadata),
        "dm_permission": bool(metadata.dm_permission),
    }
