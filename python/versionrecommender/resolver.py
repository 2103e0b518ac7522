"""Ordered provider registry answering version lookups and override operations."""

import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import (
    ConfigurationError, MissingVersionParameterError, NoVersionError, UnknownProviderError,
)
from .models import OverrideStatus, UpdateConfiguration, UpdateResult
from .providers import RecommendationProvider
from .updater import UpdateEngine
from .version_parser import LOCAL_QUALIFIER, SNAPSHOT_QUALIFIER

logger = logging.getLogger(__name__)

Committer = Callable[[List[Path], str], None]


class VersionRecommender:
    """
    Registry of recommendation providers for one project scope.

    Lifecycle: providers are added without I/O (configure phase),
    initialize() then reads the override state of every provider. Version
    maps are computed on the first lookup reaching a provider.

    Lookup asks the providers in declaration order; the first one with a
    version wins.
    """

    def __init__(
        self,
        providers: Iterable[RecommendationProvider] = (),
        update_config: Optional[UpdateConfiguration] = None,
        excluded_scopes: Iterable[str] = (),
        force_recommender_version: bool = False,
        parameters: Optional[Mapping[str, str]] = None,
        committer: Optional[Committer] = None,
    ):
        self._providers: Dict[str, RecommendationProvider] = {}
        self.update_config = update_config or UpdateConfiguration()
        self.excluded_scopes = set(excluded_scopes)
        self.force_recommender_version = force_recommender_version
        self.parameters: Dict[str, str] = dict(parameters or {})
        self.committer = committer
        self.updater = UpdateEngine(self.update_config)
        self._initialized = False

        for provider in providers:
            self.add_provider(provider)

    @classmethod
    def from_config(cls, config, committer: Optional[Committer] = None) -> 'VersionRecommender':
        """Build a registry from a RecommendationConfig."""
        return cls(
            providers=config.create_providers(),
            update_config=config.update_config,
            excluded_scopes=config.excluded_scopes,
            force_recommender_version=config.force_recommender_version,
            parameters=config.parameters,
            committer=committer,
        )

    # --- configuration --------------------------------------------------

    def add_provider(self, provider: RecommendationProvider) -> RecommendationProvider:
        if self._initialized:
            raise ConfigurationError(f"Cannot add provider '{provider.name}' after initialization")
        if provider.name in self._providers:
            raise ConfigurationError(f"A provider with the name '{provider.name}' is already configured")
        self._providers[provider.name] = provider
        return provider

    @property
    def providers(self) -> List[RecommendationProvider]:
        return list(self._providers.values())

    @property
    def provider_names(self) -> List[str]:
        return list(self._providers)

    def provider(self, name: str) -> RecommendationProvider:
        try:
            return self._providers[name]
        except KeyError:
            raise UnknownProviderError(name) from None

    def initialize(self) -> 'VersionRecommender':
        """Read the override state of all providers. Calling it again has no effect."""
        if not self._initialized:
            self.initialize_versions()
            self._initialized = True
        return self

    def initialize_versions(self) -> None:
        for provider in self._providers.values():
            provider.initialize_version()

    # --- lookup ---------------------------------------------------------

    def get_version(self, group: str, name: str) -> Optional[str]:
        """Recommended version or None."""
        self.initialize()
        for provider in self._providers.values():
            version = provider.get_version(group, name)
            if version:
                logger.debug(f"{group}:{name} -> {version} ({provider.name})")
                return version
        return None

    def lookup(self, group: str, name: str) -> str:
        """Recommended version; raises NoVersionError if no provider knows the module."""
        version = self.get_version(group, name)
        if version is None:
            raise NoVersionError(group, name)
        return version

    def resolve(self, group: str, name: str, requested_version: Optional[str] = None,
                scope: Optional[str] = None) -> Optional[str]:
        """
        Version a dependency request of the host build resolves to.

        Requests of excluded scopes are returned unchanged. Requests without
        version, or every request if force_recommender_version is set, get
        the recommended version. A forced request keeps its own version if
        there is no recommendation.
        """
        if scope is not None and scope in self.excluded_scopes:
            logger.warning(f"Scope '{scope}' is excluded from version recommendation, {group}:{name} is not changed")
            return requested_version

        if requested_version and not self.force_recommender_version:
            return requested_version

        version = self.get_version(group, name)
        if version:
            if requested_version and version != requested_version:
                logger.info(f"Version of {group}:{name} forced from {requested_version} to {version}")
            return version
        if requested_version:
            return requested_version
        raise NoVersionError(group, name)

    # --- override operations -------------------------------------------

    def parameter(self, name: str) -> Optional[str]:
        """Externally supplied version of a provider (parameter '<name>Version')."""
        value = self.parameters.get(f"{name}Version")
        return value.strip() if value and value.strip() else None

    def set_version(self, name: str, version: Optional[str] = None) -> Path:
        provider = self.provider(name)
        version = version or self.parameter(name)
        if not version:
            raise MissingVersionParameterError(name)
        return provider.set_version(version)

    def set_local(self, name: str, version: Optional[str] = None) -> Path:
        return self._set_qualified(name, version, LOCAL_QUALIFIER)

    def set_snapshot(self, name: str, version: Optional[str] = None) -> Path:
        return self._set_qualified(name, version, SNAPSHOT_QUALIFIER)

    def _set_qualified(self, name: str, version: Optional[str], qualifier: str) -> Path:
        provider = self.provider(name)
        base = version or provider.current_version or self.parameter(name)
        if not base:
            raise MissingVersionParameterError(name)
        return provider.set_local_version(base, qualifier)

    def set_all(self) -> List[Path]:
        """Set every provider with a version parameter; the others stay untouched."""
        written = []
        for name in self._providers:
            version = self.parameter(name)
            if version:
                written.append(self.set_version(name, version))
            else:
                logger.debug(f"No parameter {name}Version, {name} is not changed")
        return written

    def reset(self, name: str) -> None:
        self.provider(name).reset_version()

    def reset_all(self) -> None:
        for provider in self._providers.values():
            provider.reset_version()

    def store(self, name: str) -> Path:
        """Store the working version of one provider."""
        path = self.provider(name).store_version()
        self._commit([path], f"Store version recommendation of {name}")
        return path

    def store_all(self) -> List[Path]:
        """Store all providers with a working version, returns the written files."""
        written = []
        self.initialize()
        for provider in self._providers.values():
            if provider.override.status != OverrideStatus.WORKING:
                logger.debug(f"Nothing to store for {provider.name}")
                continue
            written.append(provider.store_version())

        if written:
            self._commit(written, "Store version recommendations")
        else:
            logger.info("No working versions to store")
        return written

    def _commit(self, files: Sequence[Path], message: str) -> None:
        if self.committer is not None:
            logger.info(f"Committing {len(files)} file(s): {message}")
            self.committer(list(files), message)

    # --- update ---------------------------------------------------------

    def update(self, name: str) -> UpdateResult:
        """Update one provider; errors propagate."""
        return self.updater.update(self.provider(name))

    def update_all(self) -> List[UpdateResult]:
        """Update all default update providers, one result per provider."""
        return self.updater.update_all(self._providers.values())

    def close(self) -> None:
        closed = set()
        for provider in self._providers.values():
            view = provider.repository
            if id(view) not in closed:
                view.close()
                closed.add(id(view))
