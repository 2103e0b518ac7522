"""Core data models for versionrecommender."""

import fnmatch
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict

# group:artifact -> version
VersionMap = Dict[str, str]

WILDCARD = '*'


def dependency_key(group: str, name: str) -> str:
    """Return the version map key of a coordinate."""
    return f"{group}:{name}"


def wildcard_key(group: str) -> str:
    """Return the version map key that matches every artifact of a group."""
    return f"{group}:{WILDCARD}"


class ProviderKind(Enum):
    """Supported recommendation sources. The value is the short type name."""
    IVY = "ivy"
    MAVEN = "pom"
    PROPERTIES = "properties"

    @classmethod
    def from_name(cls, name: str) -> 'ProviderKind':
        aliases = {'ivy': cls.IVY, 'pom': cls.MAVEN, 'maven': cls.MAVEN, 'bom': cls.MAVEN,
                   'properties': cls.PROPERTIES, 'props': cls.PROPERTIES}
        try:
            return aliases[name.lower()]
        except KeyError:
            raise ValueError(f"Unknown provider type '{name}'") from None


class SourceType(Enum):
    """How the content of a provider is located."""
    FILE = "file"
    URL = "url"
    DEPENDENCY = "dependency"
    MAPPING = "mapping"


@dataclass
class ModuleCoordinate:
    """A module identified by group and name, optionally with a version."""

    group: str
    name: str
    version: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> 'ModuleCoordinate':
        """Parse 'group:name' or 'group:name:version'."""
        parts = [part.strip() for part in text.split(':')]
        if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
            raise ValueError(f"Invalid module coordinate '{text}' (expected group:name[:version])")
        version = parts[2] if len(parts) == 3 and parts[2] else None
        return cls(group=parts[0], name=parts[1], version=version)

    @property
    def key(self) -> str:
        """Return group:name."""
        return dependency_key(self.group, self.name)

    @property
    def full_name(self) -> str:
        """Return group:name:version (version left out when unknown)."""
        if self.version:
            return f"{self.group}:{self.name}:{self.version}"
        return self.key

    def with_version(self, version: Optional[str]) -> 'ModuleCoordinate':
        return ModuleCoordinate(group=self.group, name=self.name, version=version)

    def __str__(self) -> str:
        return self.full_name


@dataclass
class SourceLocator:
    """Where a provider reads its versions from."""

    type: SourceType
    location: Optional[str] = None  # file path or URL
    dependency: Optional[ModuleCoordinate] = None
    mapping: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_file(cls, path) -> 'SourceLocator':
        return cls(type=SourceType.FILE, location=str(path))

    @classmethod
    def from_url(cls, url: str) -> 'SourceLocator':
        return cls(type=SourceType.URL, location=url)

    @classmethod
    def from_dependency(cls, coordinate) -> 'SourceLocator':
        if isinstance(coordinate, str):
            coordinate = ModuleCoordinate.parse(coordinate)
        return cls(type=SourceType.DEPENDENCY, dependency=coordinate)

    @classmethod
    def from_mapping(cls, mapping: Dict[str, str]) -> 'SourceLocator':
        return cls(type=SourceType.MAPPING, mapping=dict(mapping))

    def describe(self) -> str:
        """Human readable identity used in log and error messages."""
        if self.type == SourceType.DEPENDENCY:
            return f"dependency {self.dependency}"
        if self.type == SourceType.MAPPING:
            return f"static map with {len(self.mapping)} entries"
        return f"{self.type.value} {self.location}"


class UpdateScope(Enum):
    """Which part of a version an update may advance."""
    MAJOR = "MAJOR"
    MINOR = "MINOR"
    PATCH = "PATCH"
    AUTO = "AUTO"

    @classmethod
    def from_name(cls, name: str) -> 'UpdateScope':
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown update scope '{name}' (use MAJOR, MINOR, PATCH or AUTO)") from None


@dataclass
class UpdateConfigItem:
    """
    Filter rule for updates.

    Attributes:
        name: Identifier of the rule
        org: Glob for the module group, empty matches every group
        module: Glob for the module name, empty matches every name
        search_pattern: Regular expression a candidate version must contain
        scope: Version segment which may advance
    """
    name: str
    org: str = ""
    module: str = ""
    search_pattern: str = ""
    scope: UpdateScope = UpdateScope.PATCH

    def matches(self, group: str, name: str) -> bool:
        if self.org and not fnmatch.fnmatchcase(group, self.org):
            return False
        if self.module and not fnmatch.fnmatchcase(name, self.module):
            return False
        return True


DEFAULT_UPDATE_ITEM = UpdateConfigItem(name="default")


@dataclass
class UpdateConfiguration:
    """Update rules plus the providers handled by a global update."""

    items: List[UpdateConfigItem] = field(default_factory=list)
    default_update_providers: List[str] = field(default_factory=list)
    default_item: UpdateConfigItem = field(default_factory=lambda: DEFAULT_UPDATE_ITEM)

    def item_for(self, group: str, name: str) -> UpdateConfigItem:
        """Return the first rule matching the module, or the default rule."""
        for item in self.items:
            if item.matches(group, name):
                return item
        return self.default_item

    def is_default_provider(self, provider_name: str) -> bool:
        """An empty provider list means every provider takes part in a global update."""
        return not self.default_update_providers or provider_name in self.default_update_providers


class OverrideStatus(Enum):
    UNSET = "unset"
    WORKING = "working"
    STORED = "stored"


@dataclass
class OverrideState:
    """In-memory view of the override files of a provider."""

    status: OverrideStatus = OverrideStatus.UNSET
    version: Optional[str] = None
    is_local: bool = False

    @property
    def is_set(self) -> bool:
        return self.status != OverrideStatus.UNSET


@dataclass
class UpdateResult:
    """Outcome of the update of one provider."""

    provider: str
    previous: Optional[str] = None
    version: Optional[str] = None
    error: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.error is None and self.version is not None and self.version != self.previous

    @property
    def failed(self) -> bool:
        return self.error is not None

    def __str__(self) -> str:
        if self.failed:
            return f"{self.provider}: failed ({self.error})"
        if self.changed:
            return f"{self.provider}: {self.previous} -> {self.version}"
        return f"{self.provider}: no change ({self.previous})"
