"""Flattens the transitive dependencies of an Ivy module into a version map."""

import logging
from collections import deque
from typing import Deque, Dict, List, Set, Tuple

import requests

from .errors import MalformedSourceError
from .models import ModuleCoordinate, VersionMap
from .parsers import VersionSourceParser

logger = logging.getLogger(__name__)


class TransitiveClosureWalker:
    """
    Breadth-first flattening of an Ivy dependency graph.

    The declared dependencies of the root module are depth 1, their own
    dependencies depth 2 and so on. Conflicts are settled structurally:

    - shallow wins (default): the first version recorded for a key stays
    - deep wins (override_transitive_deps): a version found at a greater
      depth replaces the recorded one

    On equal depth the first one in declaration order wins in both modes.
    A module (group:name:version) is expanded at most once.
    """

    def __init__(self, repository, override_transitive_deps: bool = False):
        self.repository = repository
        self.override_transitive_deps = override_transitive_deps

        self.versions: VersionMap = {}
        self.depths: Dict[str, int] = {}
        self.visited: Set[str] = set()

    def walk(self, root_dependencies: List[ModuleCoordinate]) -> VersionMap:
        """Return the flattened map for the given direct dependencies."""
        self.versions = {}
        self.depths = {}
        self.visited = set()

        queue: Deque[Tuple[ModuleCoordinate, int]] = deque((dep, 1) for dep in root_dependencies)

        while queue:
            dep, depth = queue.popleft()
            if not dep.version:
                logger.debug(f"Skipping {dep.key} without version")
                continue

            self._record(dep, depth)

            if dep.full_name in self.visited:
                continue
            self.visited.add(dep.full_name)

            for child in self._dependencies_of(dep):
                queue.append((child, depth + 1))

        logger.info(f"Transitive closure contains {len(self.versions)} modules ({len(self.visited)} expanded)")
        return self.versions

    def _record(self, dep: ModuleCoordinate, depth: int) -> None:
        key = dep.key
        recorded_depth = self.depths.get(key)

        if recorded_depth is None:
            self.versions[key] = dep.version
            self.depths[key] = depth
        elif self.override_transitive_deps and depth > recorded_depth:
            if self.versions[key] != dep.version:
                logger.debug(f"Overriding {key} {self.versions[key]} with {dep.version} (depth {depth})")
            self.versions[key] = dep.version
            self.depths[key] = depth
        elif self.versions[key] != dep.version:
            logger.debug(f"Keeping {key} {self.versions[key]}, ignoring {dep.version} (depth {depth})")

    def _dependencies_of(self, dep: ModuleCoordinate) -> List[ModuleCoordinate]:
        try:
            content = self.repository.fetch_ivy_descriptor(dep.group, dep.name, dep.version)
        except (OSError, requests.RequestException) as e:
            raise MalformedSourceError(f"ivy descriptor of {dep}", str(e)) from e

        if content is None:
            logger.debug(f"No descriptor for {dep}, not expanded")
            return []

        return VersionSourceParser.ivy_dependencies(content, f"ivy descriptor of {dep}")
