"""Read access to Ivy and Maven repositories (descriptors and version listings)."""

import logging
import os
import re
import xml.etree.ElementTree as ET
from typing import List, Optional, Sequence

import requests

from .models import ProviderKind
from .parsers import _is_url
from .ssl_config import REQUEST_TIMEOUT, create_session

logger = logging.getLogger(__name__)

DEFAULT_IVY_PATTERN = '[organisation]/[module]/[revision]/[type]s/ivy-[revision].xml'
MAVEN_CENTRAL_URL = 'https://repo1.maven.org/maven2'

HREF_PATTERN = re.compile(r'href="([^"]+)"', re.IGNORECASE)


class Repository:
    """Common handling of local directories and http(s) base locations."""

    kind: ProviderKind = None

    def __init__(self, base: str, session: Optional[requests.Session] = None):
        self.base = str(base).rstrip('/')
        self.is_remote = _is_url(self.base)
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = create_session()
        return self._session

    def _location(self, relative: str) -> str:
        if self.is_remote:
            return f"{self.base}/{relative}"
        return os.path.join(self.base, *relative.split('/'))

    def _read(self, relative: str) -> Optional[str]:
        """Read a file below the base location, None if it does not exist."""
        location = self._location(relative)
        if self.is_remote:
            logger.debug(f"GET {location}")
            response = self.session.get(location, timeout=REQUEST_TIMEOUT)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.text

        if not os.path.isfile(location):
            return None
        with open(location, 'r', encoding='utf-8') as f:
            return f.read()

    def _list(self, relative: str) -> List[str]:
        """Names of the entries of a directory (or directory listing page)."""
        location = self._location(relative)
        if self.is_remote:
            page = self._read(relative.rstrip('/') + '/')
            if page is None:
                return []
            names = []
            for href in HREF_PATTERN.findall(page):
                name = href.rstrip('/').split('/')[-1]
                if not name or name.startswith(('.', '?', '#')) or ':' in href.split('/')[0]:
                    continue
                if name not in names:
                    names.append(name)
            return names

        if not os.path.isdir(location):
            return []
        return sorted(entry for entry in os.listdir(location)
                      if os.path.isdir(os.path.join(location, entry)))

    def close(self):
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.base})"


class IvyRepository(Repository):
    """Ivy repository addressed with an Ivy pattern."""

    kind = ProviderKind.IVY

    def __init__(self, base: str, pattern: str = DEFAULT_IVY_PATTERN, session: Optional[requests.Session] = None):
        super().__init__(base, session)
        self.pattern = pattern.lstrip('/')

    @staticmethod
    def substitute(pattern: str, org: str, module: str, revision: str = None) -> str:
        """Fill an Ivy pattern for the descriptor of a module."""
        tokens = {
            'organisation': org,
            'organization': org,
            'orgPath': org.replace('.', '/'),
            'module': module,
            'artifact': 'ivy',
            'type': 'ivy',
            'ext': 'xml',
        }
        if revision is not None:
            tokens['revision'] = revision

        result = pattern
        for token, value in tokens.items():
            result = result.replace(f"[{token}]", value)

        # optional parts: keep them only when every token was filled
        return re.sub(r'\(([^()]*)\)', lambda m: '' if '[' in m.group(1) else m.group(1), result)

    def fetch_descriptor(self, org: str, module: str, revision: str) -> Optional[str]:
        return self._read(self.substitute(self.pattern, org, module, revision))

    def list_versions(self, org: str, module: str) -> List[str]:
        """Revisions found at the directory level of [revision]."""
        if '[revision]' not in self.pattern:
            return []
        prefix = self.pattern.split('[revision]', 1)[0]
        if prefix and not prefix.endswith('/'):
            logger.debug(f"Pattern {self.pattern} does not keep revisions in directories")
            return []
        return self._list(self.substitute(prefix, org, module))


class MavenRepository(Repository):
    """Maven 2 layout repository."""

    kind = ProviderKind.MAVEN

    @staticmethod
    def module_path(group: str, artifact: str) -> str:
        return f"{group.replace('.', '/')}/{artifact}"

    def fetch_descriptor(self, group: str, artifact: str, version: str) -> Optional[str]:
        return self._read(f"{self.module_path(group, artifact)}/{version}/{artifact}-{version}.pom")

    def list_versions(self, group: str, artifact: str) -> List[str]:
        """Versions from maven-metadata.xml, version directories as fallback."""
        module_path = self.module_path(group, artifact)
        text = self._read(f"{module_path}/maven-metadata.xml")
        if text is None:
            return [] if self.is_remote else self._list(module_path)

        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            logger.warning(f"Invalid maven-metadata.xml for {group}:{artifact}: {e}")
            return []

        versions = []
        versioning = root.find("versioning")
        if versioning is not None:
            versions_elem = versioning.find("versions")
            if versions_elem is not None:
                for version_elem in versions_elem.findall("version"):
                    if version_elem.text and version_elem.text.strip():
                        versions.append(version_elem.text.strip())
        return versions


class RepositoryView:
    """Ordered set of repositories providers and updates read from."""

    def __init__(self, repositories: Sequence[Repository] = ()):
        self.repositories: List[Repository] = list(repositories)

    def add(self, repository: Repository) -> None:
        self.repositories.append(repository)

    def _of_kind(self, kind: ProviderKind) -> List[Repository]:
        return [repo for repo in self.repositories if repo.kind == kind]

    def fetch_descriptor(self, kind: ProviderKind, group: str, name: str, version: str) -> Optional[str]:
        """First descriptor found wins."""
        for repo in self._of_kind(kind):
            content = repo.fetch_descriptor(group, name, version)
            if content is not None:
                logger.debug(f"Found descriptor of {group}:{name}:{version} in {repo}")
                return content
        return None

    def fetch_ivy_descriptor(self, org: str, module: str, revision: str) -> Optional[str]:
        return self.fetch_descriptor(ProviderKind.IVY, org, module, revision)

    def fetch_maven_descriptor(self, group: str, artifact: str, version: str) -> Optional[str]:
        return self.fetch_descriptor(ProviderKind.MAVEN, group, artifact, version)

    def list_versions(self, kind: ProviderKind, group: str, name: str) -> List[str]:
        """Merged listing of all repositories of the kind."""
        versions: List[str] = []
        for repo in self._of_kind(kind):
            for version in repo.list_versions(group, name):
                if version not in versions:
                    versions.append(version)
        return versions

    def close(self):
        for repo in self.repositories:
            repo.close()
