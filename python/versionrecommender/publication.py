"""Filling recommended versions into generated Ivy and Maven publication descriptors.

Both functions take the descriptor text and the resolved versions per
configuration ({configuration: {"group:name": version}}) and return a new
descriptor text. Dependencies that already have a version are kept.
"""

import logging
import re
import warnings
import xml.etree.ElementTree as ET
from typing import Dict, Mapping, Optional

from .errors import MalformedSourceError, MissingConfigurationWarning
from .models import dependency_key
from .parsers import _child, _children, get_element_text

logger = logging.getLogger(__name__)

ResolvedVersions = Mapping[str, Mapping[str, str]]

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'
DEFAULT_MAVEN_SCOPE = 'compile'


def _parse(xml: str, source: str) -> ET.Element:
    try:
        return ET.fromstring(xml)
    except ET.ParseError as e:
        raise MalformedSourceError(source, f"invalid XML ({e})") from e


def _namespace(tag: str) -> str:
    return tag[1:].split('}')[0] if tag.startswith('{') else ''


def _serialize(root: ET.Element, original: str) -> str:
    namespace = _namespace(root.tag)
    if namespace:
        ET.register_namespace('', namespace)
    text = ET.tostring(root, encoding='unicode')
    if original.lstrip().startswith('<?xml'):
        text = XML_DECLARATION + text
    return text


def _missing_configuration(configuration: str, key: str) -> None:
    message = f"Configuration '{configuration}' of {key} not found, version is not set"
    logger.warning(message)
    warnings.warn(message, MissingConfigurationWarning, stacklevel=3)


def _resolved_version(resolved: ResolvedVersions, configuration: str, key: str) -> Optional[str]:
    versions = resolved.get(configuration)
    if versions is None:
        _missing_configuration(configuration, key)
        return None
    version = versions.get(key)
    if not version:
        logger.warning(f"No resolved version of {key} in configuration '{configuration}'")
    return version


def ivy_configuration(conf: Optional[str]) -> Optional[str]:
    """Configuration of the own module in a conf mapping ('compile->default' -> 'compile')."""
    if not conf:
        return None
    local = conf.split('->', 1)[0]
    names = [name.strip() for name in re.split(r'[,;]', local) if name.strip()]
    return names[0] if names else None


def patch_ivy_descriptor(xml: str, resolved: ResolvedVersions) -> str:
    """Set the rev attribute of dependencies that have none."""
    root = _parse(xml, 'ivy publication')
    patched: Dict[str, str] = {}

    for dependencies in _children(root, 'dependencies'):
        for dep in _children(dependencies, 'dependency'):
            if (dep.get('rev') or '').strip():
                continue
            key = dependency_key(dep.get('org', ''), dep.get('name', ''))
            configuration = ivy_configuration(dep.get('conf'))
            if configuration is None:
                logger.warning(f"Dependency {key} has no configuration, version is not set")
                continue

            version = _resolved_version(resolved, configuration, key)
            if version:
                dep.set('rev', version)
                patched[key] = version

    logger.info(f"Set {len(patched)} versions in ivy publication")
    return _serialize(root, xml)


def _insert_version(dep: ET.Element, version: str) -> None:
    namespace = _namespace(dep.tag)
    version_elem = ET.Element(f"{{{namespace}}}version" if namespace else 'version')
    version_elem.text = version

    artifact = _child(dep, 'artifactId')
    index = list(dep).index(artifact) + 1 if artifact is not None else len(dep)
    # same indentation as artifactId
    if artifact is not None:
        version_elem.tail = artifact.tail
    dep.insert(index, version_elem)


def patch_maven_descriptor(xml: str, resolved: ResolvedVersions) -> str:
    """Add a <version> to dependencies (and managed dependencies) without one."""
    root = _parse(xml, 'maven publication')

    sections = list(_children(root, 'dependencies'))
    for management in _children(root, 'dependencyManagement'):
        sections.extend(_children(management, 'dependencies'))

    patched = 0
    for dependencies in sections:
        for dep in _children(dependencies, 'dependency'):
            if get_element_text(dep, 'version'):
                continue
            key = dependency_key(get_element_text(dep, 'groupId') or '', get_element_text(dep, 'artifactId') or '')
            configuration = get_element_text(dep, 'scope') or DEFAULT_MAVEN_SCOPE

            version = _resolved_version(resolved, configuration, key)
            if version:
                existing = _child(dep, 'version')
                if existing is not None:
                    existing.text = version
                else:
                    _insert_version(dep, version)
                patched += 1

    logger.info(f"Set {patched} versions in maven publication")
    return _serialize(root, xml)
