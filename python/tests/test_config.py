"""Tests for the JSON configuration."""

import json

import pytest

from versionrecommender.config import load_config, parameters_from_environment, parse_config
from versionrecommender.errors import ConfigurationError
from versionrecommender.models import ProviderKind, SourceType, UpdateScope
from versionrecommender.providers import IvyProvider, MavenProvider, PropertiesProvider
from versionrecommender.repository import IvyRepository, MavenRepository

CONFIG = {
    "forceRecommenderVersion": True,
    "excludeScopesByName": ["testRuntime"],
    "repositories": {
        "ivy": [{"url": "ivy-repo", "pattern": "[organisation]/[module]/[revision]/ivy.xml"}],
        "maven": ["https://repo.example/maven2"],
    },
    "providers": [
        {"name": "filter", "type": "ivy", "dependency": "org.test:filter:1.0",
         "transitive": True, "overrideTransitiveDeps": True, "excludes": ["org.test:legacy*"]},
        {"name": "platform", "type": "pom", "url": "https://repo.example/bom.pom", "configDir": "config"},
        {"name": "props", "type": "properties", "file": "versions.properties"},
        {"name": "inline", "type": "properties", "versions": {"g:a": "1.0"}},
    ],
    "updateConfiguration": {
        "defaultUpdateProvider": "filter, platform",
        "items": [
            {"name": "nightly", "org": "org.test", "module": "filter*", "searchPattern": "\\d{8}$", "update": "AUTO"},
        ],
    },
}


def write_config(tmp_path, data=None):
    path = tmp_path / 'versionrecommendation.json'
    path.write_text(json.dumps(CONFIG if data is None else data), encoding='utf-8')
    return path


class TestLoadConfig:
    """Tests for reading configuration files."""

    def test_global_flags(self, tmp_path):
        config = load_config(write_config(tmp_path))

        assert config.force_recommender_version is True
        assert config.excluded_scopes == {'testRuntime'}
        assert config.project_dir == tmp_path.resolve()
        assert config.effective_work_dir == tmp_path.resolve() / 'build' / 'versionRecommendation'

    def test_providers(self, tmp_path):
        config = load_config(write_config(tmp_path))
        specs = {spec.name: spec for spec in config.providers}

        assert [spec.name for spec in config.providers] == ['filter', 'platform', 'props', 'inline']
        assert specs['filter'].kind == ProviderKind.IVY
        assert specs['filter'].source.dependency.version == '1.0'
        assert specs['filter'].override_transitive_deps is True
        assert specs['platform'].source.type == SourceType.URL
        assert specs['platform'].config_dir == tmp_path.resolve() / 'config'
        assert specs['props'].source.location == str(tmp_path.resolve() / 'versions.properties')
        assert specs['inline'].source.mapping == {'g:a': '1.0'}

    def test_update_configuration(self, tmp_path):
        config = load_config(write_config(tmp_path))
        update = config.update_config

        assert update.default_update_providers == ['filter', 'platform']
        assert update.item_for('org.test', 'filter-core').scope == UpdateScope.AUTO
        assert update.item_for('org.other', 'lib').name == 'default'

    def test_create_providers(self, tmp_path):
        config = load_config(write_config(tmp_path))

        providers = config.create_providers()

        assert [type(p) for p in providers] == [IvyProvider, MavenProvider, PropertiesProvider, PropertiesProvider]
        assert providers[0].transitive is True
        assert providers[0].is_excluded('org.test', 'legacy-api') is True
        assert providers[1].override.stored_file == tmp_path.resolve() / 'config' / '.pomPlatform.version'
        repositories = providers[0].repository.repositories
        assert isinstance(repositories[0], IvyRepository)
        assert repositories[0].base == str(tmp_path.resolve() / 'ivy-repo')
        assert isinstance(repositories[1], MavenRepository)
        assert providers[1].repository is providers[0].repository

    def test_parameters(self, tmp_path, monkeypatch):
        monkeypatch.setenv('VERSIONRECOMMENDER_FILTER_VERSION', '2.0')
        monkeypatch.setenv('VERSIONRECOMMENDER_PROPS_VERSION', '3.0')

        config = load_config(write_config(tmp_path), {'propsVersion': '4.0'})

        assert config.parameters == {'filterVersion': '2.0', 'propsVersion': '4.0'}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / 'missing.json')

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'broken.json'
        path.write_text('{"providers": [', encoding='utf-8')

        with pytest.raises(ConfigurationError):
            load_config(path)


class TestConfigValidation:
    """Tests for invalid declarations."""

    @pytest.mark.parametrize("providers", [
        [{"name": "a", "type": "properties", "versions": {}}, {"name": "a", "type": "ivy", "file": "ivy.xml"}],
        [{"name": "a", "type": "gradle", "file": "x"}],
        [{"name": "a", "type": "ivy"}],
        [{"name": "a", "type": "ivy", "file": "ivy.xml", "url": "https://x"}],
        [{"name": "a", "type": "ivy", "versions": {"g:a": "1"}}],
        [{"name": "a", "type": "properties", "dependency": "g:a:1"}],
        [{"name": "a", "type": "ivy", "dependency": "filter"}],
        [{"type": "ivy", "file": "ivy.xml"}],
    ])
    def test_invalid_providers(self, tmp_path, providers):
        with pytest.raises(ConfigurationError):
            parse_config({"providers": providers}, tmp_path)

    def test_invalid_update_scope(self, tmp_path):
        data = {"updateConfiguration": {"items": [{"name": "x", "update": "BIGGEST"}]}}

        with pytest.raises(ConfigurationError):
            parse_config(data, tmp_path)

    def test_invalid_search_pattern(self, tmp_path):
        data = {"updateConfiguration": {"items": [{"name": "x", "searchPattern": "(unclosed"}]}}

        with pytest.raises(ConfigurationError, match="searchPattern"):
            parse_config(data, tmp_path)

    def test_not_an_object(self, tmp_path):
        with pytest.raises(ConfigurationError):
            parse_config([], tmp_path)


def test_parameters_from_environment():
    environ = {'VERSIONRECOMMENDER_FILTER_VERSION': '1.0', 'OTHER': 'x'}

    assert parameters_from_environment(['filter', 'bom'], environ) == {'filterVersion': '1.0'}
