"""Loading of the version recommendation configuration (JSON)."""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set

from .errors import ConfigurationError
from .models import (
    ModuleCoordinate, ProviderKind, SourceLocator, UpdateConfigItem, UpdateConfiguration, UpdateScope,
)
from .parsers import _is_url
from .providers import PROVIDER_CLASSES, IvyProvider, RecommendationProvider
from .repository import DEFAULT_IVY_PATTERN, IvyRepository, MavenRepository, RepositoryView

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = 'versionrecommendation.json'
DEFAULT_WORK_DIR = os.path.join('build', 'versionRecommendation')
PARAMETER_ENV_PREFIX = 'VERSIONRECOMMENDER_'


@dataclass
class ProviderSpec:
    """Declaration of one provider."""
    name: str
    kind: ProviderKind
    source: SourceLocator
    transitive: bool = False
    override_transitive_deps: bool = False
    excludes: List[str] = field(default_factory=list)
    config_dir: Optional[Path] = None


@dataclass
class IvyRepositorySpec:
    url: str
    pattern: str = DEFAULT_IVY_PATTERN


@dataclass
class RecommendationConfig:
    """Everything one project scope needs to build its providers."""
    project_dir: Path
    work_dir: Optional[Path] = None
    providers: List[ProviderSpec] = field(default_factory=list)
    update_config: UpdateConfiguration = field(default_factory=UpdateConfiguration)
    excluded_scopes: Set[str] = field(default_factory=set)
    force_recommender_version: bool = False
    parameters: Dict[str, str] = field(default_factory=dict)
    ivy_repositories: List[IvyRepositorySpec] = field(default_factory=list)
    maven_repositories: List[str] = field(default_factory=list)

    @property
    def effective_work_dir(self) -> Path:
        return self.work_dir or Path(self.project_dir) / DEFAULT_WORK_DIR

    def create_repository_view(self) -> RepositoryView:
        view = RepositoryView()
        for spec in self.ivy_repositories:
            view.add(IvyRepository(spec.url, spec.pattern))
        for url in self.maven_repositories:
            view.add(MavenRepository(url))
        return view

    def create_providers(self, repository: Optional[RepositoryView] = None) -> List[RecommendationProvider]:
        """Instantiate the declared providers, all sharing one repository view."""
        if repository is None:
            repository = self.create_repository_view()

        providers = []
        for spec in self.providers:
            kwargs: Dict[str, Any] = {
                'repository': repository,
                'exclude_patterns': spec.excludes,
            }
            cls = PROVIDER_CLASSES[spec.kind]
            if cls is IvyProvider:
                kwargs['transitive'] = spec.transitive
                kwargs['override_transitive_deps'] = spec.override_transitive_deps

            providers.append(cls(
                spec.name,
                spec.source,
                self.effective_work_dir,
                spec.config_dir or self.project_dir,
                **kwargs,
            ))
        return providers


def _resolve_path(base: Path, value: str) -> Path:
    path = Path(os.path.expanduser(value))
    return path if path.is_absolute() else base / path


def _location(base: Path, value: str) -> str:
    return value if _is_url(value) else str(_resolve_path(base, value))


def _parse_source(name: str, kind: ProviderKind, data: Mapping[str, Any], base: Path) -> SourceLocator:
    keys = [key for key in ('dependency', 'file', 'url', 'versions') if data.get(key) is not None]
    if len(keys) != 1:
        raise ConfigurationError(
            f"Provider '{name}' needs exactly one of dependency, file, url or versions (found {keys or 'none'})")
    key = keys[0]
    value = data[key]

    if key == 'versions':
        if kind != ProviderKind.PROPERTIES or not isinstance(value, dict):
            raise ConfigurationError(f"Provider '{name}': 'versions' must be a mapping of a properties provider")
        return SourceLocator.from_mapping({str(k): str(v) for k, v in value.items()})
    if key == 'dependency':
        if kind == ProviderKind.PROPERTIES:
            raise ConfigurationError(f"Provider '{name}': properties providers read a file, url or versions")
        try:
            return SourceLocator.from_dependency(ModuleCoordinate.parse(str(value)))
        except ValueError as e:
            raise ConfigurationError(f"Provider '{name}': {e}") from e
    if key == 'url':
        return SourceLocator.from_url(str(value))
    return SourceLocator.from_file(_resolve_path(base, str(value)))


def _parse_provider(data: Mapping[str, Any], base: Path) -> ProviderSpec:
    name = data.get('name')
    if not name:
        raise ConfigurationError(f"Provider without name: {data}")
    try:
        kind = ProviderKind.from_name(str(data.get('type', '')))
    except ValueError as e:
        raise ConfigurationError(f"Provider '{name}': {e}") from e

    config_dir = data.get('configDir')
    return ProviderSpec(
        name=name,
        kind=kind,
        source=_parse_source(name, kind, data, base),
        transitive=bool(data.get('transitive', False)),
        override_transitive_deps=bool(data.get('overrideTransitiveDeps', False)),
        excludes=list(data.get('excludes', [])),
        config_dir=_resolve_path(base, config_dir) if config_dir else None,
    )


def _parse_update_configuration(data: Mapping[str, Any]) -> UpdateConfiguration:
    default_providers = data.get('defaultUpdateProvider', [])
    if isinstance(default_providers, str):
        default_providers = [p.strip() for p in default_providers.split(',') if p.strip()]

    items = []
    for item in data.get('items', []):
        try:
            scope = UpdateScope.from_name(item.get('update', UpdateScope.PATCH.value))
        except ValueError as e:
            raise ConfigurationError(f"Update item '{item.get('name', '')}': {e}") from e
        search_pattern = item.get('searchPattern', '')
        if search_pattern:
            try:
                re.compile(search_pattern)
            except re.error as e:
                raise ConfigurationError(f"Update item '{item.get('name', '')}': invalid searchPattern '{search_pattern}' ({e})") from e
        items.append(UpdateConfigItem(
            name=item.get('name', ''),
            org=item.get('org', ''),
            module=item.get('module', ''),
            search_pattern=search_pattern,
            scope=scope,
        ))
    return UpdateConfiguration(items=items, default_update_providers=list(default_providers))


def parameters_from_environment(provider_names, environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Collect '<name>Version' parameters from VERSIONRECOMMENDER_<NAME>_VERSION variables."""
    environ = os.environ if environ is None else environ
    parameters = {}
    for name in provider_names:
        value = environ.get(f"{PARAMETER_ENV_PREFIX}{name.upper()}_VERSION")
        if value:
            parameters[f"{name}Version"] = value
    return parameters


def parse_config(data: Mapping[str, Any], base_dir: Path,
                 parameters: Optional[Mapping[str, str]] = None) -> RecommendationConfig:
    """Build a RecommendationConfig from the decoded JSON document."""
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a JSON object")
    base_dir = Path(base_dir)

    providers = [_parse_provider(p, base_dir) for p in data.get('providers', [])]
    names = [p.name for p in providers]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate provider names: {', '.join(duplicates)}")

    repositories = data.get('repositories', {})
    ivy_repositories = []
    for repo in repositories.get('ivy', []):
        if isinstance(repo, str):
            repo = {'url': repo}
        ivy_repositories.append(IvyRepositorySpec(
            url=_location(base_dir, repo['url']),
            pattern=repo.get('pattern', DEFAULT_IVY_PATTERN),
        ))
    maven_repositories = [_location(base_dir, url) for url in repositories.get('maven', [])]

    merged_parameters = parameters_from_environment(names)
    merged_parameters.update(parameters or {})

    work_dir = data.get('workDir')
    config = RecommendationConfig(
        project_dir=base_dir,
        work_dir=_resolve_path(base_dir, work_dir) if work_dir else None,
        providers=providers,
        update_config=_parse_update_configuration(data.get('updateConfiguration', {})),
        excluded_scopes=set(data.get('excludeScopesByName', [])),
        force_recommender_version=bool(data.get('forceRecommenderVersion', False)),
        parameters=merged_parameters,
        ivy_repositories=ivy_repositories,
        maven_repositories=maven_repositories,
    )
    logger.debug(f"Loaded configuration with providers {names}")
    return config


def load_config(path, parameters: Optional[Mapping[str, str]] = None) -> RecommendationConfig:
    """Read a JSON configuration file; relative paths resolve against its directory."""
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    logger.info(f"Loading version recommendation configuration from {path}")
    return parse_config(data, path.resolve().parent, parameters)
