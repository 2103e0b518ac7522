"""Readers turning Ivy descriptors, Maven POMs and properties files into version maps."""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, Iterator, List, Optional, Set, Tuple
from urllib.parse import urlparse

import requests

from .errors import MalformedSourceError
from .models import ModuleCoordinate, VersionMap, dependency_key
from .ssl_config import REQUEST_TIMEOUT, create_session

logger = logging.getLogger(__name__)


def _is_url(path: str) -> bool:
    """Check if a path is a URL."""
    return urlparse(str(path)).scheme in ('http', 'https')


def _read_content(path: str) -> str:
    """
    Read content from either a file path or URL.

    Args:
        path: File path or URL

    Returns:
        Content as string

    Raises:
        OSError: If the file can't be read
        requests.RequestException: If URL fetch fails
    """
    if _is_url(path):
        logger.info(f"Fetching content from URL: {path}")
        with create_session() as session:
            response = session.get(path, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.text
    else:
        logger.info(f"Reading content from file: {path}")
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()


def read_source(location: str) -> str:
    """Read a version source, turning I/O failures into MalformedSourceError."""
    try:
        return _read_content(location)
    except (OSError, requests.RequestException) as e:
        raise MalformedSourceError(str(location), str(e)) from e


def _local_name(tag: str) -> str:
    """Tag without XML namespace."""
    return tag.split('}')[-1] if '}' in tag else tag


def _children(parent: ET.Element, tag_name: str) -> List[ET.Element]:
    """Direct children with the given local name, namespace ignored."""
    return [child for child in parent if _local_name(child.tag) == tag_name]


def _child(parent: ET.Element, tag_name: str) -> Optional[ET.Element]:
    found = _children(parent, tag_name)
    return found[0] if found else None


def get_element_text(parent: ET.Element, tag_name: str) -> Optional[str]:
    """Get text content of a child element."""
    elem = _child(parent, tag_name)
    if elem is not None and elem.text and elem.text.strip():
        return elem.text.strip()
    return None


def resolve_property(value: str, properties: Dict[str, str], max_iterations: int = 10) -> Optional[str]:
    """
    Resolve ${property} references in a string with nesting support.
    Returns None if unresolvable.
    """
    if not value or '${' not in value:
        return value

    resolved = value
    iterations = 0

    while '${' in resolved and iterations < max_iterations:
        start_idx = resolved.find('${')
        end_idx = resolved.find('}', start_idx)

        if start_idx == -1 or end_idx == -1:
            break

        prop_name = resolved[start_idx + 2:end_idx]
        prop_value = properties.get(prop_name)

        if prop_value is None:
            return None

        resolved = resolved[:start_idx] + prop_value + resolved[end_idx + 1:]
        iterations += 1

    if '${' in resolved:
        return None

    return resolved


def parse_pom_properties(root: ET.Element) -> Dict[str, str]:
    """
    Parse all properties from <properties> section plus the project coordinates.

    project.groupId and project.version fall back to the <parent> values,
    every project.* property is also available as pom.*.
    """
    properties = {}

    props_elem = _child(root, 'properties')
    if props_elem is not None:
        for prop in props_elem:
            if prop.text:
                properties[_local_name(prop.tag)] = prop.text.strip()

    parent = _child(root, 'parent')
    for field in ('groupId', 'artifactId', 'version'):
        value = get_element_text(root, field)
        if not value and parent is not None and field != 'artifactId':
            value = get_element_text(parent, field)
        if value:
            properties.setdefault(f'project.{field}', value)
            properties.setdefault(f'pom.{field}', value)

    return properties


def _parse_xml(content: str, source: str) -> ET.Element:
    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        raise MalformedSourceError(source, f"invalid XML ({e})") from e


_ESCAPES = {'t': '\t', 'n': '\n', 'r': '\r', 'f': '\f'}


def _logical_lines(content: str) -> Iterator[Tuple[int, str]]:
    """Yield (first line number, text) of each logical properties line."""
    pending = None
    start = 0

    for line_num, raw in enumerate(content.splitlines(), 1):
        line = raw.lstrip()
        if pending is None:
            if not line or line[0] in '#!':
                continue
            start, pending = line_num, line
        else:
            pending += line

        trailing = len(pending) - len(pending.rstrip('\\'))
        if trailing % 2:
            pending = pending[:-1]
            continue
        yield start, pending
        pending = None

    if pending is not None:
        yield start, pending


def _find_separator(line: str) -> Optional[int]:
    """Index of the first unescaped '=' or, failing that, ':'."""
    colon = None
    i = 0
    while i < len(line):
        char = line[i]
        if char == '\\':
            i += 2
            continue
        if char == '=':
            return i
        if char == ':' and colon is None:
            colon = i
        i += 1
    return colon


def _unescape(text: str) -> str:
    if '\\' not in text:
        return text

    out = []
    i = 0
    while i < len(text):
        char = text[i]
        if char != '\\':
            out.append(char)
            i += 1
            continue
        escaped = text[i + 1:i + 2]
        if escaped == 'u' and len(text) >= i + 6:
            try:
                out.append(chr(int(text[i + 2:i + 6], 16)))
                i += 6
                continue
            except ValueError:
                pass
        out.append(_ESCAPES.get(escaped, escaped))
        i += 2
    return ''.join(out)


class VersionSourceParser:
    """Parser for the supported version source formats."""

    @staticmethod
    def ivy_dependencies(content: str, source: str = 'ivy descriptor') -> List[ModuleCoordinate]:
        """
        Return the declared dependencies of an Ivy descriptor in document order.

        A dependency without 'org' inherits the organisation of the module
        (Ivy semantics), a dependency without 'rev' has no version.
        """
        root = _parse_xml(content, source)
        if _local_name(root.tag) != 'ivy-module':
            raise MalformedSourceError(source, f"root element is <{_local_name(root.tag)}>, expected <ivy-module>")

        info = _child(root, 'info')
        module_org = info.get('organisation') if info is not None else None

        coordinates = []
        for dependencies in _children(root, 'dependencies'):
            for dep in _children(dependencies, 'dependency'):
                org = dep.get('org') or module_org
                name = dep.get('name')
                if not org or not name:
                    raise MalformedSourceError(source, f"dependency without org/name: {ET.tostring(dep, encoding='unicode').strip()}")
                rev = (dep.get('rev') or '').strip() or None
                coordinates.append(ModuleCoordinate(group=org, name=name, version=rev))

        return coordinates

    @staticmethod
    def parse_ivy(content: str, source: str = 'ivy descriptor') -> VersionMap:
        """Parse an Ivy descriptor: key = org:name, value = rev."""
        versions: VersionMap = {}
        for coordinate in VersionSourceParser.ivy_dependencies(content, source):
            if coordinate.version:
                versions[coordinate.key] = coordinate.version
            else:
                logger.debug(f"Skipping {coordinate.key} without rev in {source}")

        logger.info(f"Parsed {len(versions)} versions from {source}")
        return versions

    @staticmethod
    def parse_maven(content: str, source: str = 'pom', repository=None, _visited: Optional[Set[str]] = None) -> VersionMap:
        """
        Parse a Maven POM/BOM.

        Entries of <dependencies> and <dependencyManagement><dependencies> are
        collected; managed versions win over direct ones. Dependencies without
        a version are skipped. With a repository view, imported BOMs
        (scope import, type pom) are read and merged below the own entries.

        Args:
            content: POM XML
            source: Identity used in messages
            repository: Optional object with fetch_maven_descriptor(group, artifact, version)

        Returns:
            Version map
        """
        visited = _visited if _visited is not None else set()
        root = _parse_xml(content, source)
        if _local_name(root.tag) != 'project':
            raise MalformedSourceError(source, f"root element is <{_local_name(root.tag)}>, expected <project>")

        properties = parse_pom_properties(root)
        imported: VersionMap = {}
        own: VersionMap = {}

        sections: List[Tuple[str, ET.Element]] = []
        for deps in _children(root, 'dependencies'):
            sections.append(('dependencies', deps))
        for mgmt in _children(root, 'dependencyManagement'):
            for deps in _children(mgmt, 'dependencies'):
                sections.append(('dependencyManagement', deps))

        for section, deps in sections:
            for dep in _children(deps, 'dependency'):
                group_id = resolve_property(get_element_text(dep, 'groupId'), properties)
                artifact_id = resolve_property(get_element_text(dep, 'artifactId'), properties)
                version = get_element_text(dep, 'version')

                if not group_id or not artifact_id:
                    raise MalformedSourceError(source, f"dependency without groupId/artifactId in <{section}>")

                if not version:
                    logger.debug(f"Skipping {group_id}:{artifact_id} without version in {source}")
                    continue

                resolved_version = resolve_property(version, properties)
                if not resolved_version:
                    logger.debug(f"Could not resolve version {version} for {group_id}:{artifact_id}")
                    continue

                if (section == 'dependencyManagement'
                        and get_element_text(dep, 'scope') == 'import'
                        and get_element_text(dep, 'type') == 'pom'):
                    imported.update(VersionSourceParser._import_bom(
                        ModuleCoordinate(group_id, artifact_id, resolved_version), source, repository, visited))
                    continue

                own[dependency_key(group_id, artifact_id)] = resolved_version

        versions = {**imported, **own}
        logger.info(f"Parsed {len(versions)} versions from {source} ({len(imported)} imported)")
        return versions

    @staticmethod
    def _import_bom(coordinate: ModuleCoordinate, source: str, repository, visited: Set[str]) -> VersionMap:
        if repository is None:
            logger.debug(f"Skipping BOM import {coordinate} of {source} (no repository)")
            return {}
        if coordinate.full_name in visited:
            logger.debug(f"BOM {coordinate} already imported")
            return {}
        visited.add(coordinate.full_name)

        logger.info(f"Importing BOM: {coordinate}")
        try:
            bom = repository.fetch_maven_descriptor(coordinate.group, coordinate.name, coordinate.version)
        except (OSError, requests.RequestException) as e:
            raise MalformedSourceError(f"bom {coordinate}", str(e)) from e
        if bom is None:
            logger.warning(f"Failed to download BOM: {coordinate}")
            return {}
        return VersionSourceParser.parse_maven(bom, f"bom {coordinate}", repository, visited)

    @staticmethod
    def parse_properties(content: str, source: str = 'properties') -> VersionMap:
        """
        Parse a Java properties file keyed group:artifact or group:*.

        Blank lines and lines starting with '#' or '!' are ignored. A line
        ending in an unescaped backslash continues on the next one. Keys and
        values are separated by the first unescaped '=' (or ':' when there is
        no '='), so a key written as org.test\\:lib reads as org.test:lib.
        Entries with an empty value stay absent.
        """
        versions: VersionMap = {}

        for line_num, line in _logical_lines(content):
            separator = _find_separator(line)
            if separator is None:
                raise MalformedSourceError(source, f"line {line_num}: expected key=value, got '{line}'")

            key = _unescape(line[:separator].strip())
            value = _unescape(line[separator + 1:].strip())
            if not key:
                raise MalformedSourceError(source, f"line {line_num}: empty key")
            if not value:
                logger.debug(f"Line {line_num}: no version for {key}")
                continue
            versions[key] = value

        logger.info(f"Parsed {len(versions)} versions from {source}")
        return versions

    @staticmethod
    def parse_mapping(mapping: Dict[str, str]) -> VersionMap:
        """Inline mapping from configuration, empty values dropped."""
        return {str(k).strip(): str(v).strip() for k, v in mapping.items() if v is not None and str(v).strip()}
