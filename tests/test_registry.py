"""Tests for command metadata extraction and the command registry."""

import discord
import pytest

from cmdbot.errors import InvalidCommandMetadataError, MissingMetadataError
from cmdbot.framework import (
    BaseCommand,
    CommandMetadata,
    CommandRegistry,
    OptionSpec,
    command,
    define_command,
    get_command_metadata,
)


class _Noop(BaseCommand):
    async def execute(self, context):
        return None


def _definition(name, **kwargs):
    return define_command(_Noop, CommandMetadata(name=name, description=f"{name} command", **kwargs))


@command("hello", "Say hello", permissions=["manage_guild"], features=["read:config"])
class HelloCommand(BaseCommand):
    async def execute(self, context):
        return None


class UndecoratedCommand(BaseCommand):
    async def execute(self, context):
        return None


class HelloSubclass(HelloCommand):
    pass


class TestMetadata:

    def test_decorator_attaches_metadata(self):
        metadata = get_command_metadata(HelloCommand)
        assert metadata.name == "hello"
        assert metadata.required_permissions == frozenset({"manage_guild"})
        assert metadata.required_features == ("read:config",)
        assert metadata.dm_permission is False

    def test_missing_metadata(self):
        with pytest.raises(MissingMetadataError):
            get_command_metadata(UndecoratedCommand)

    def test_subclass_does_not_inherit_metadata(self):
        with pytest.raises(MissingMetadataError):
            get_command_metadata(HelloSubclass)

    def test_metadata_is_immutable(self):
        metadata = get_command_metadata(HelloCommand)
        with pytest.raises(AttributeError):
            metadata.name = "changed"

    def test_feature_enums_are_normalized(self):
        from cmdbot.config import Feature

        metadata = CommandMetadata("x", "x", required_features=[Feature.UPDATE_CONFIG, "update:config"])
        assert metadata.required_features == ("update:config",)


class TestRegistry:

    def test_register_and_lookup(self, registry):
        registered = registry.register(HelloCommand)
        assert isinstance(registered.instance, HelloCommand)
        assert registry.lookup("hello") is registered
        assert registry.lookup("missing") is None

    def test_register_definition(self, registry):
        registry.register(_definition("alpha"))
        assert registry.lookup("alpha").metadata.description == "alpha command"

    def test_register_without_metadata_fails(self, registry):
        with pytest.raises(MissingMetadataError):
            registry.register(UndecoratedCommand)
        assert len(registry) == 0

    def test_invalid_metadata_fails_at_registration(self, registry):
        bad = define_command(_Noop, CommandMetadata(
            "bad", "Bad",
            options=[OptionSpec("flag", "Flag", discord.AppCommandOptionType.boolean, autocomplete=True)],
        ))
        with pytest.raises(InvalidCommandMetadataError):
            registry.register(bad)
        assert "bad" not in registry

    def test_duplicate_name_last_registration_wins(self, registry):
        registry.register(_definition("alpha"))
        registry.register(_definition("beta"))
        replacement = define_command(_Noop, CommandMetadata("alpha", "replacement"))
        registry.register(replacement)

        assert len(registry) == 2
        assert registry.lookup("alpha").metadata.description == "replacement"
        assert [c.metadata.name for c in registry.list_all()] == ["alpha", "beta"]

    def test_each_registration_creates_one_instance(self, registry):
        calls = []

        def factory():
            calls.append(1)
            return _Noop()

        registry.register(define_command(factory, CommandMetadata("gamma", "Gamma")))
        assert len(calls) == 1

    def test_list_all_preserves_insertion_order(self, registry):
        for name in ["zeta", "alpha", "mid"]:
            registry.register(_definition(name))
        assert [c.metadata.name for c in registry.list_all()] == ["zeta", "alpha", "mid"]

    def test_lookup_does_not_mutate(self, registry):
        registry.register(_definition("alpha"))
        registry.lookup("doesnotexist")
        assert len(registry) == 1

    def test_build_schemas_is_stable(self, registry):
        registry.register(HelloCommand)
        registry.register(_definition("alpha", dm_permission=True))
        first = registry.build_schemas()
        second = registry.build_schemas()
        assert first == second
        assert [s["name"] for s in first] == ["hello", "alpha"]
        assert first[0]["default_member_permissions"] == str(discord.Permissions.VALID_FLAGS["manage_guild"])


class TestRegisterBatch:

    def test_best_effort_continues_after_failure(self, registry):
        failures = registry.register_batch([_definition("one"), UndecoratedCommand, _definition("two")])

        assert [c.metadata.name for c in registry.list_all()] == ["one", "two"]
        assert len(failures) == 1
        assert failures[0][0] is UndecoratedCommand
        assert isinstance(failures[0][1], MissingMetadataError)

    def test_best_effort_records_factory_errors(self, registry):
        def broken():
            raise RuntimeError("boom")

        failures = registry.register_batch([define_command(broken, CommandMetadata("x", "x")), _definition("y")])
        assert "y" in registry
        assert "x" not in registry
        assert isinstance(failures[0][1], RuntimeError)

    def test_strict_is_all_or_nothing(self, registry):
        with pytest.raises(MissingMetadataError):
            registry.register_batch([_definition("one"), UndecoratedCommand], strict=True)
        assert len(registry) == 0

    def test_strict_registers_everything_on_success(self, registry):
        failures = registry.register_batch([_definition("one"), _definition("two")], strict=True)
        assert failures == []
        assert len(registry) == 2
