"""Version recommendation providers (Ivy, Maven BOM, properties)."""

import fnmatch
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import requests

from .closure import TransitiveClosureWalker
from .errors import MalformedSourceError, MissingVersionParameterError
from .models import (
    ModuleCoordinate, OverrideState, ProviderKind, SourceLocator, SourceType,
    VersionMap, dependency_key, wildcard_key,
)
from .override_store import OverrideStore
from .parsers import VersionSourceParser, read_source
from .repository import RepositoryView
from .version_parser import LOCAL_QUALIFIER, VersionParser

logger = logging.getLogger(__name__)


class RecommendationProvider:
    """
    Base class of all providers.

    A provider is configured without I/O. Its override state is read by
    initialize_version(), its version map is computed on first use and kept
    until an override operation invalidates it.
    """

    kind: ProviderKind = None

    def __init__(
        self,
        name: str,
        source: SourceLocator,
        work_dir: Path,
        config_dir: Path,
        repository: Optional[RepositoryView] = None,
        exclude_patterns: Iterable[str] = (),
    ):
        if not name:
            raise ValueError("Provider name must not be empty")
        self.name = name
        self.source = source
        self.repository = repository or RepositoryView()
        self.exclude_patterns: List[str] = list(exclude_patterns)
        self.config_dir = Path(config_dir)

        self.override = OverrideStore(name, self.short_kind(), Path(work_dir), self.config_dir)
        self._versions: Optional[VersionMap] = None
        self._version_initialized = False

    def short_kind(self) -> str:
        """Short type name used in file names ('ivy', 'pom', 'properties')."""
        return self.kind.value

    # --- version map ----------------------------------------------------

    def compute_map(self) -> VersionMap:
        """Read the source and build the version map."""
        raise NotImplementedError

    @property
    def versions(self) -> VersionMap:
        """Version map, computed once per instance."""
        if self._versions is None:
            logger.info(f"Prepare version list from {self.short_kind()} of {self.name}.")
            self._versions = self._layer_override(self.compute_map())
            logger.info(f"Prepare version list from {self.short_kind()} of {self.name} - finished ({len(self._versions)} entries).")
        return self._versions

    def invalidate(self) -> None:
        self._versions = None

    def _layer_override(self, versions: VersionMap) -> VersionMap:
        """
        Apply an active override to the declared entries.

        A dependency based provider reads its descriptor at the override
        version, so its map already reflects it. Other sources have no
        version of their own; the override replaces the value of every entry
        they declare and leaves undeclared coordinates to later providers.
        """
        override = self.override_version
        if not override or self.module is not None:
            return versions
        return {key: override for key in versions}

    def _read(self) -> str:
        return read_source(self.source.location)

    # --- module identity ------------------------------------------------

    @property
    def module(self) -> Optional[ModuleCoordinate]:
        """Module this provider reads, for dependency based sources."""
        if self.source.type == SourceType.DEPENDENCY:
            return self.source.dependency
        return None

    @property
    def configured_version(self) -> Optional[str]:
        module = self.module
        return module.version if module else None

    @property
    def supports_update(self) -> bool:
        return self.module is not None

    def is_excluded(self, group: str, name: str) -> bool:
        """True if group:name matches one of the exclude globs."""
        key = dependency_key(group, name)
        return any(fnmatch.fnmatchcase(key, pattern) for pattern in self.exclude_patterns)

    # --- override state -------------------------------------------------

    def initialize_version(self) -> OverrideState:
        """Read override files; safe to call repeatedly."""
        state = self.override.initialize()
        self._version_initialized = True
        self.invalidate()
        return state

    def _ensure_version(self) -> None:
        if not self._version_initialized:
            self.initialize_version()

    @property
    def override_version(self) -> Optional[str]:
        self._ensure_version()
        return self.override.version

    @property
    def current_version(self) -> Optional[str]:
        """Working, else stored, else configured version."""
        return self.override_version or self.configured_version

    def set_version(self, version: Optional[str]) -> Path:
        self._ensure_version()
        path = self.override.set(version)
        self.invalidate()
        return path

    def set_local_version(self, version: Optional[str] = None, qualifier: str = LOCAL_QUALIFIER) -> Path:
        """Set version with qualifier; without version the current one is used."""
        self._ensure_version()
        base = version or self.current_version
        if not base:
            raise MissingVersionParameterError(self.name)
        path = self.override.set(VersionParser.with_qualifier(base, qualifier), local=True)
        self.invalidate()
        return path

    def reset_version(self) -> None:
        self._ensure_version()
        self.override.reset()
        self.invalidate()

    def store_version(self) -> Path:
        self._ensure_version()
        return self.override.store()

    # --- lookup ---------------------------------------------------------

    def get_version(self, group: str, name: str) -> Optional[str]:
        """
        Recommendation of this provider.

        The exact key group:name is tried before the wildcard key group:*.
        Overrides are part of the map, see _layer_override().
        """
        versions = self.versions
        version = versions.get(dependency_key(group, name))
        if not version:
            version = versions.get(wildcard_key(group))
        return version or None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.source.describe()})"


class _DescriptorProvider(RecommendationProvider):
    """Providers reading a module descriptor from a file, URL or repository."""

    def _descriptor(self) -> Optional[str]:
        if self.source.type != SourceType.DEPENDENCY:
            return self._read()

        module = self.module
        version = self.current_version
        if not version:
            logger.info(f"It is not possible to identify versions for {self.name}. Please check your configuration.")
            return None

        try:
            content = self.repository.fetch_descriptor(self.kind, module.group, module.name, version)
        except (OSError, requests.RequestException) as e:
            raise MalformedSourceError(f"{module.key}:{version}", str(e)) from e
        if content is None:
            raise MalformedSourceError(f"{module.key}:{version}", f"descriptor not found in {self.repository.repositories}")
        return content

    def _add_self_entry(self, versions: VersionMap) -> None:
        module = self.module
        if module is not None and self.current_version:
            versions[module.key] = self.current_version


class IvyProvider(_DescriptorProvider):
    """Versions of the dependencies of an Ivy descriptor, optionally transitive."""

    kind = ProviderKind.IVY

    def __init__(self, *args, transitive: bool = False, override_transitive_deps: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.transitive = transitive
        self.override_transitive_deps = override_transitive_deps

    def compute_map(self) -> VersionMap:
        content = self._descriptor()
        if content is None:
            return {}

        source = self.source.describe()
        if self.transitive:
            dependencies = VersionSourceParser.ivy_dependencies(content, source)
            walker = TransitiveClosureWalker(self.repository, self.override_transitive_deps)
            versions = walker.walk(dependencies)
        else:
            versions = VersionSourceParser.parse_ivy(content, source)

        self._add_self_entry(versions)
        return versions


class MavenProvider(_DescriptorProvider):
    """Versions of a Maven BOM / POM."""

    kind = ProviderKind.MAVEN

    def compute_map(self) -> VersionMap:
        content = self._descriptor()
        if content is None:
            return {}

        versions = VersionSourceParser.parse_maven(content, self.source.describe(), self.repository)
        self._add_self_entry(versions)
        return versions


class PropertiesProvider(RecommendationProvider):
    """Versions from a properties file/URL or an inline mapping."""

    kind = ProviderKind.PROPERTIES

    def compute_map(self) -> VersionMap:
        if self.source.type == SourceType.MAPPING:
            return VersionSourceParser.parse_mapping(self.source.mapping)
        if self.source.type == SourceType.DEPENDENCY:
            raise MalformedSourceError(self.source.describe(), "properties providers read files, URLs or mappings")
        return VersionSourceParser.parse_properties(self._read(), self.source.describe())


PROVIDER_CLASSES: Dict[ProviderKind, type] = {
    ProviderKind.IVY: IvyProvider,
    ProviderKind.MAVEN: MavenProvider,
    ProviderKind.PROPERTIES: PropertiesProvider,
}
