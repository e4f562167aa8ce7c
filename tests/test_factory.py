"""Tests for ContextFactory: layer precedence, failures and entry points."""

from __future__ import annotations

import logging

import pytest

from context_factory import (
    ConfigurationError,
    ContextFactory,
    ContextFactoryOptions,
    FactorySettings,
    MalformedConfigurationError,
    MissingConnectionStringError,
    MissingRequiredFileError,
)
from conftest import connection_strings


# =====================================================================
# Layer precedence
# =====================================================================


class TestLayerPrecedence:
    """Base file < environment file < environment variables."""

    def test_base_file_only(self, base_settings, make_factory, recorder, tmp_path):
        result = make_factory().resolve_and_create(tmp_path, None)
        assert recorder.received == ["Server=A"]
        assert result == {"connection_string": "Server=A"}

    def test_environment_file_overrides_base(
        self, base_settings, write_settings, make_factory, recorder, tmp_path
    ):
        write_settings("appsettings.Production.json", connection_strings("Server=B"))
        make_factory().resolve_and_create(tmp_path, "Production")
        assert recorder.received == ["Server=B"]

    def test_environment_variable_overrides_files(
        self, base_settings, write_settings, make_factory, recorder, tmp_path
    ):
        write_settings("appsettings.Production.json", connection_strings("Server=B"))
        factory = make_factory({"ConnectionStrings__(default)": "Server=C"})
        factory.resolve_and_create(tmp_path, "Production")
        assert recorder.received == ["Server=C"]

    def test_colon_environment_variable_overrides_files(
        self, base_settings, make_factory, recorder, tmp_path
    ):
        factory = make_factory({"ConnectionStrings:(default)": "Server=C"})
        factory.resolve_and_create(tmp_path, None)
        assert recorder.received == ["Server=C"]

    def test_platform_connection_string_variable(
        self, base_settings, make_factory, recorder, tmp_path
    ):
        factory = make_factory({"SQLCONNSTR_(default)": "Server=D"})
        factory.resolve_and_create(tmp_path, None)
        assert recorder.received == ["Server=D"]

    def test_other_environment_file_ignored(
        self, base_settings, write_settings, make_factory, recorder, tmp_path
    ):
        write_settings("appsettings.Staging.json", connection_strings("Server=S"))
        make_factory().resolve_and_create(tmp_path, "Production")
        assert recorder.received == ["Server=A"]

    def test_missing_environment_file_is_tolerated(
        self, base_settings, make_factory, recorder, tmp_path
    ):
        make_factory().resolve_and_create(tmp_path, "Development")
        assert recorder.received == ["Server=A"]

    def test_entry_lookup_is_case_insensitive(
        self, write_settings, make_factory, recorder, tmp_path
    ):
        write_settings("appsettings.json", {"connectionstrings": {"(DEFAULT)": "Server=A"}})
        make_factory().resolve_and_create(tmp_path, None)
        assert recorder.received == ["Server=A"]

    def test_environment_prefix_filters_variables(
        self, base_settings, make_factory, recorder, tmp_path
    ):
        factory = make_factory(
            {
                "ConnectionStrings__(default)": "Server=ignored",
                "MYAPP_ConnectionStrings__(default)": "Server=P",
            },
            environment_variable_prefix="MYAPP_",
        )
        factory.resolve_and_create(tmp_path, None)
        assert recorder.received == ["Server=P"]


# =====================================================================
# Failures
# =====================================================================


class TestFailures:
    """Missing or blank configuration fails fast."""

    def test_missing_base_file(self, make_factory, recorder, tmp_path):
        with pytest.raises(MissingRequiredFileError) as info:
            make_factory().resolve_and_create(tmp_path, None)
        assert info.value.path == tmp_path / "appsettings.json"
        assert isinstance(info.value, FileNotFoundError)
        assert recorder.received == []

    def test_missing_base_file_with_environment_file(
        self, write_settings, make_factory, tmp_path
    ):
        write_settings("appsettings.Production.json", connection_strings("Server=B"))
        with pytest.raises(MissingRequiredFileError):
            make_factory().resolve_and_create(tmp_path, "Production")

    @pytest.mark.parametrize("value", ["", "   ", "\t\n"])
    def test_blank_connection_string(self, write_settings, make_factory, recorder, tmp_path, value):
        write_settings("appsettings.json", connection_strings(value))
        with pytest.raises(MissingConnectionStringError, match=r"'\(default\)'") as info:
            make_factory().resolve_and_create(tmp_path, None)
        assert info.value.entry_name == "(default)"
        assert recorder.received == []

    def test_absent_entry(self, write_settings, make_factory, tmp_path):
        write_settings("appsettings.json", {"ConnectionStrings": {"Other": "Server=X"}})
        with pytest.raises(MissingConnectionStringError):
            make_factory().resolve_and_create(tmp_path, None)

    def test_error_names_custom_entry(self, base_settings, make_factory, tmp_path):
        factory = make_factory(connection_string_entry="Reporting")
        with pytest.raises(MissingConnectionStringError, match="'Reporting'"):
            factory.resolve_and_create(tmp_path, None)

    def test_blank_environment_variable_blanks_value(
        self, base_settings, make_factory, tmp_path
    ):
        factory = make_factory({"ConnectionStrings__(default)": " "})
        with pytest.raises(MissingConnectionStringError):
            factory.resolve_and_create(tmp_path, None)

    def test_malformed_environment_file_is_fatal(
        self, base_settings, write_settings, make_factory, tmp_path
    ):
        write_settings("appsettings.Production.json", "{ not json")
        with pytest.raises(MalformedConfigurationError):
            make_factory().resolve_and_create(tmp_path, "Production")

    def test_all_errors_share_base_class(self, make_factory, tmp_path):
        with pytest.raises(ConfigurationError):
            make_factory().resolve_and_create(tmp_path, None)


# =====================================================================
# Entry points
# =====================================================================


class TestEntryPoints:
    """create(), create_from_options() and injected collaborators."""

    def test_create_reads_environment_name(
        self, base_settings, write_settings, make_factory, recorder
    ):
        write_settings("appsettings.Production.json", connection_strings("Server=B"))
        make_factory({"Hosting:Environment": "Production"}).create()
        assert recorder.received == ["Server=B"]

    def test_create_reads_double_underscore_environment_name(
        self, base_settings, write_settings, make_factory, recorder
    ):
        write_settings("appsettings.Production.json", connection_strings("Server=B"))
        make_factory({"Hosting__Environment": "Production"}).create()
        assert recorder.received == ["Server=B"]

    def test_create_without_environment_name(self, base_settings, make_factory, recorder):
        make_factory().create()
        assert recorder.received == ["Server=A"]

    def test_custom_environment_variable_name(
        self, base_settings, write_settings, make_factory, recorder
    ):
        write_settings("appsettings.Staging.json", connection_strings("Server=S"))
        factory = make_factory({"APP_ENV": "Staging"}, environment_variable_name="APP_ENV")
        factory.create()
        assert recorder.received == ["Server=S"]

    def test_create_from_options(self, write_settings, recorder, tmp_path):
        root = tmp_path / "content"
        root.mkdir()
        (root / "appsettings.json").write_text(
            '{"ConnectionStrings": {"(default)": "Server=A"}}', encoding="utf-8"
        )
        (root / "appsettings.Production.json").write_text(
            '{"ConnectionStrings": {"(default)": "Server=B"}}', encoding="utf-8"
        )
        factory = ContextFactory(recorder, environ={}, base_directory=tmp_path)
        factory.create_from_options(ContextFactoryOptions(str(root), "Production"))
        assert recorder.received == ["Server=B"]

    def test_custom_file_names(self, write_settings, make_factory, recorder, tmp_path):
        write_settings("db.json", connection_strings("Server=A", entry="Main"))
        write_settings("db-production.json", connection_strings("Server=B", entry="Main"))
        factory = make_factory(
            base_file_name="db.json",
            environment_file_pattern=lambda env: f"db-{env.lower()}.json",
            connection_string_entry="Main",
        )
        factory.resolve_and_create(tmp_path, "Production")
        assert recorder.received == ["Server=B"]

    def test_yaml_settings_files(self, write_settings, make_factory, recorder, tmp_path):
        write_settings("appsettings.yaml", "ConnectionStrings:\n  (default): Server=Y\n")
        factory = make_factory(
            base_file_name="appsettings.yaml",
            environment_file_pattern="appsettings.{environment}.yaml",
        )
        factory.resolve_and_create(tmp_path, "Production")
        assert recorder.received == ["Server=Y"]

    def test_plain_callable_materializer(self, base_settings, tmp_path):
        factory = ContextFactory(str.upper, environ={}, base_directory=tmp_path)
        assert factory.create() == "SERVER=A"

    def test_rejects_non_callable_materializer(self):
        with pytest.raises(TypeError):
            ContextFactory(42)  # type: ignore[arg-type]

    def test_rejects_materializer_class(self):
        from context_factory.storage import SQLiteMaterializer

        with pytest.raises(TypeError, match="instance"):
            ContextFactory(SQLiteMaterializer)  # type: ignore[arg-type]

    def test_accepts_class_used_as_plain_callable(self, base_settings, tmp_path):
        factory = ContextFactory(str, environ={}, base_directory=tmp_path)
        assert factory.create() == "Server=A"

    def test_resolve_connection_string_skips_materializer(
        self, base_settings, make_factory, recorder, tmp_path
    ):
        assert make_factory().resolve_connection_string(tmp_path, None) == "Server=A"
        assert recorder.received == []

    def test_injected_loader_receives_file_chain(self, recorder, tmp_path):
        from context_factory.domain.models import ConfigurationLayer, ResolvedConfiguration

        calls = []

        def loader(base_path, files, environ=None, env_prefix=""):
            calls.append((base_path, list(files), env_prefix))
            layer = ConfigurationLayer("stub", {"ConnectionStrings:(default)": "Server=L"})
            return ResolvedConfiguration.merge([layer])

        factory = ContextFactory(recorder, environ={}, base_directory=tmp_path, loader=loader)
        factory.resolve_and_create(tmp_path, "Production")
        assert calls == [
            (tmp_path, [("appsettings.json", True), ("appsettings.Production.json", False)], "")
        ]
        assert recorder.received == ["Server=L"]

    def test_each_call_rereads_files(self, write_settings, base_settings, make_factory, recorder, tmp_path):
        factory = make_factory()
        factory.create()
        write_settings("appsettings.json", connection_strings("Server=Z"))
        factory.create()
        assert recorder.received == ["Server=A", "Server=Z"]

    def test_defaults_to_process_environment(self, base_settings, recorder, tmp_path, monkeypatch):
        monkeypatch.setenv("ConnectionStrings__(default)", "Server=E")
        factory = ContextFactory(recorder, base_directory=tmp_path)
        factory.create()
        assert recorder.received == ["Server=E"]

    def test_log_does_not_leak_secret(self, write_settings, make_factory, tmp_path, caplog):
        write_settings("appsettings.json", connection_strings("Server=A;Password=hunter2"))
        with caplog.at_level(logging.DEBUG, logger="context_factory"):
            make_factory().resolve_and_create(tmp_path, None)
        assert "Resolved connection string '(default)'" in caplog.text
        assert "hunter2" not in caplog.text

    def test_settings_are_frozen(self):
        settings = FactorySettings()
        with pytest.raises((AttributeError, TypeError)):
            settings.base_file_name = "other.json"  # type: ignore[misc]
