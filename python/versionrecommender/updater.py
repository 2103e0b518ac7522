"""Selects newer versions for providers and writes them as working versions."""

import logging
import re
from typing import Iterable, List, Optional

import requests

from .errors import UpdateQueryError
from .models import UpdateConfigItem, UpdateConfiguration, UpdateResult, UpdateScope
from .providers import RecommendationProvider
from .version_parser import VersionInfo, VersionParser

logger = logging.getLogger(__name__)


def _same_segments(candidate: VersionInfo, current: VersionInfo, count: int) -> bool:
    return all(candidate.segment(i) == current.segment(i) for i in range(count))


class UpdateEngine:
    """
    Update of dependency based providers.

    The available versions of the provider module are listed from the
    repository view the provider reads its descriptors from. A candidate
    must be greater than the current version, match the search pattern of
    the governing UpdateConfigItem and stay within its scope.
    """

    def __init__(self, update_config: Optional[UpdateConfiguration] = None):
        self.update_config = update_config or UpdateConfiguration()

    def select_candidate(self, current: str, available: Iterable[str], item: UpdateConfigItem) -> Optional[str]:
        """Return the greatest eligible version, None if none is newer than current."""
        current_info = VersionParser.parse(current)
        pattern = re.compile(item.search_pattern) if item.search_pattern else None

        candidates: List[str] = []
        for version in available:
            if VersionParser.compare(version, current) <= 0:
                continue
            info = VersionParser.parse(version)

            if pattern is not None:
                if not pattern.search(version):
                    continue
            elif current_info.is_release and not info.is_release:
                continue

            if not self._in_scope(info, current_info, item, pattern):
                continue
            candidates.append(version)

        logger.debug(f"Candidates for {current} with rule {item.name}: {candidates}")
        return VersionParser.latest(candidates)

    @staticmethod
    def _in_scope(info: VersionInfo, current: VersionInfo, item: UpdateConfigItem, pattern) -> bool:
        scope = item.scope
        if scope == UpdateScope.AUTO:
            match = pattern.search(current.original_string) if pattern is not None else None
            if match:
                return info.original_string.startswith(current.original_string[:match.start()])
            scope = UpdateScope.PATCH

        if scope == UpdateScope.MAJOR:
            return True
        if scope == UpdateScope.MINOR:
            return _same_segments(info, current, 1)
        return _same_segments(info, current, 2)

    def _available_versions(self, provider: RecommendationProvider) -> List[str]:
        module = provider.module
        try:
            versions = provider.repository.list_versions(provider.kind, module.group, module.name)
        except (OSError, requests.RequestException) as e:
            raise UpdateQueryError(provider.name, f"version listing failed: {e}", module.key) from e

        if not versions:
            raise UpdateQueryError(provider.name, "no versions found in the configured repositories", module.key)
        return versions

    def update(self, provider: RecommendationProvider) -> UpdateResult:
        """Update one provider. Raises UpdateQueryError if versions cannot be determined."""
        if not provider.supports_update:
            raise UpdateQueryError(provider.name, f"{provider.source.describe()} has no module coordinate to update")

        module = provider.module
        current = provider.current_version
        if provider.is_excluded(module.group, module.name):
            logger.info(f"{module.key} of {provider.name} is excluded from updates")
            return UpdateResult(provider.name, previous=current)

        if not current:
            raise UpdateQueryError(provider.name, "no current version (set a version or configure one)", module.key)

        item = self.update_config.item_for(module.group, module.name)
        try:
            candidate = self.select_candidate(current, self._available_versions(provider), item)
        except re.error as e:
            raise UpdateQueryError(provider.name, f"invalid searchPattern '{item.search_pattern}' of {item.name}: {e}", module.key) from e

        if candidate is None or candidate == current:
            logger.info(f"No newer version of {module.key} than {current} ({item.name}, {item.scope.value})")
            return UpdateResult(provider.name, previous=current)

        provider.set_version(candidate)
        logger.info(f"Updated {provider.name} ({module.key}) from {current} to {candidate}")
        return UpdateResult(provider.name, previous=current, version=candidate)

    def update_all(self, providers: Iterable[RecommendationProvider]) -> List[UpdateResult]:
        """Update every updatable provider taking part in a global update; failures are isolated."""
        results = []
        for provider in providers:
            if not provider.supports_update:
                logger.debug(f"Skipping {provider.name}, {provider.source.describe()} is not updatable")
                continue
            if not self.update_config.is_default_provider(provider.name):
                logger.debug(f"Skipping {provider.name}, not a default update provider")
                continue

            try:
                results.append(self.update(provider))
            except UpdateQueryError as e:
                logger.error(str(e))
                results.append(UpdateResult(provider.name, previous=provider.current_version, error=e.reason))
        return results
