"""Unit tests for SourceRegistry"""

import pytest

from multiauth_service.core.auth import registry as registry_module
from multiauth_service.core.auth.errors import ConfigurationError
from multiauth_service.core.auth.registry import (
    SourceRegistry,
    get_source_registry,
    initialize_source_registry,
    load_authsources,
    register_source_type,
    reset_registry,
)
from multiauth_service.core.auth.static import StaticSource

pytestmark = pytest.mark.unit


@pytest.fixture
def authsources_file(tmp_path):
    path = tmp_path / "authsources.yml"
    path.write_text(
        "multi:\n"
        "  type: \"multiauth:MultiAuth\"\n"
        "  sources:\n"
        "    - dev\n"
        "    - legacy:\n"
        "        css-class: old\n"
        "dev:\n"
        "  type: \"exampleauth:Static\"\n"
        "  attributes:\n"
        "    uid: developer\n"
        "legacy: [\"exampleauth:Static\", {attributes: {uid: [guest]}, warn: false}]\n"
    )
    return path


class TestLoadAuthsources:
    """Test reading the authsources file"""

    def test_load_file(self, authsources_file):
        authsources = load_authsources(str(authsources_file))

        assert list(authsources) == ["multi", "dev", "legacy"]
        assert authsources["multi"]["sources"][1] == {"legacy": {"css-class": "old"}}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot load authsources"):
            load_authsources(str(tmp_path / "missing.yml"))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "authsources.yml"
        path.write_text("- dev\n- multi\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_authsources(str(path))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "authsources.yml"
        path.write_text("")

        assert load_authsources(str(path)) == {}


class TestSourceRegistry:
    """Test resolving sources"""

    def test_type_tag_forms(self, authsources_file, state_store, test_settings):
        registry = SourceRegistry(load_authsources(str(authsources_file)), state_store, test_settings)

        assert registry.get_type_tag("dev") == "exampleauth:Static"
        assert registry.get_type_tag("legacy") == "exampleauth:Static"
        assert registry.get_type_tag("unknown") is None

    def test_non_string_type_tag(self, state_store, test_settings):
        registry = SourceRegistry({"odd": [42]}, state_store, test_settings)

        assert registry.get_type_tag("odd") is None

    def test_resolve_and_cache(self, authsources_file, state_store, test_settings):
        registry = SourceRegistry(load_authsources(str(authsources_file)), state_store, test_settings)

        dev = registry.resolve("dev")

        assert isinstance(dev, StaticSource)
        assert dev.attributes == {"uid": ["developer"]}
        assert registry.resolve("dev") is dev

    def test_list_form_options(self, authsources_file, state_store, test_settings):
        registry = SourceRegistry(load_authsources(str(authsources_file)), state_store, test_settings)

        legacy = registry.resolve("legacy")

        assert legacy.attributes == {"uid": ["guest"]}

    def test_broker_built_from_file(self, authsources_file, state_store, test_settings):
        registry = SourceRegistry(load_authsources(str(authsources_file)), state_store, test_settings)

        broker = registry.resolve("multi")

        assert broker.state_store is state_store
        assert [(d.source, d.css_class) for d in broker.sources] == [
            ("dev", "exampleauth-Static"),
            ("legacy", "old"),
        ]

    @pytest.mark.parametrize("source_id", ["unknown", "", None])
    def test_resolve_unknown(self, registry, source_id):
        assert registry.resolve(source_id) is None

    def test_resolve_without_type(self, state_store, test_settings):
        registry = SourceRegistry({"untyped": {"attributes": {}}}, state_store, test_settings)

        with pytest.raises(ConfigurationError, match="has no type"):
            registry.resolve("untyped")

    def test_resolve_unknown_type(self, state_store, test_settings):
        registry = SourceRegistry({"ldap": {"type": "ldap:LDAP"}}, state_store, test_settings)

        with pytest.raises(ConfigurationError, match="Unknown type ldap:LDAP"):
            registry.resolve("ldap")

    def test_registered_type_by_path(self, state_store, test_settings):
        register_source_type("dev:Static", "multiauth_service.core.auth.static:StaticSource")
        registry = SourceRegistry({"dev": {"type": "dev:Static"}}, state_store, test_settings)

        assert isinstance(registry.resolve("dev"), StaticSource)

    def test_registered_type_by_class(self, state_store, test_settings):
        register_source_type("dev:Static", StaticSource)
        registry = SourceRegistry(
            {"dev": {"type": "dev:Static", "warn": False}}, state_store, test_settings
        )

        assert isinstance(registry.resolve("dev"), StaticSource)

    def test_unimportable_type(self, monkeypatch, state_store, test_settings):
        monkeypatch.setitem(registry_module.SOURCE_TYPES, "gone:Gone", "no_such_module:Gone")
        registry = SourceRegistry({"gone": {"type": "gone:Gone"}}, state_store, test_settings)

        with pytest.raises(ConfigurationError, match="Cannot import"):
            registry.resolve("gone")

    def test_source_ids(self, registry, authsources):
        assert registry.source_ids() == list(authsources)


class TestGlobalRegistry:
    """Test the application-wide registry"""

    def test_initialize_and_get(self, authsources, state_store, test_settings):
        try:
            registry = initialize_source_registry(state_store, authsources, test_settings)
            assert get_source_registry() is registry
        finally:
            reset_registry()

    def test_get_before_initialize(self):
        reset_registry()

        with pytest.raises(RuntimeError, match="not initialized"):
            get_source_registry()

    def test_initialize_from_settings_path(self, authsources_file, state_store, test_settings):
        settings = test_settings.model_copy(update={"authsources_path": str(authsources_file)})
        try:
            registry = initialize_source_registry(state_store, settings=settings)
            assert registry.source_ids() == ["multi", "dev", "legacy"]
        finally:
            reset_registry()
