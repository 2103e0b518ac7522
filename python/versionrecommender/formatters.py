"""Output formatters for version maps, provider states and update results."""

import json
from typing import Iterable, List

from .models import UpdateResult, VersionMap
from .providers import RecommendationProvider


class OutputFormatter:
    """Formatter for the CLI outputs."""

    @staticmethod
    def format_as_list(versions: VersionMap) -> str:
        """Format a version map as sorted 'group:name:version' lines."""
        lines = [f"{key}:{version}" for key, version in sorted(versions.items())]
        return '\n'.join(lines) + '\n' if lines else ''

    @staticmethod
    def format_as_json(versions: VersionMap) -> str:
        return json.dumps(dict(sorted(versions.items())), indent=2) + '\n'

    @staticmethod
    def format_provider_states(providers: Iterable[RecommendationProvider]) -> str:
        """One line per provider with kind, source and override state."""
        lines: List[str] = []
        for provider in providers:
            state = provider.override.state
            override = f"{state.status.value} {state.version}" if state.is_set else state.status.value
            lines.append(f"{provider.name} ({provider.short_kind()}, {provider.source.describe()}): {override}")
        return '\n'.join(lines) + '\n' if lines else ''

    @staticmethod
    def format_update_results(results: Iterable[UpdateResult]) -> str:
        lines = [str(result) for result in results]
        if not lines:
            return "No providers to update\n"
        return '\n'.join(lines) + '\n'


FORMATS = {
    'list': OutputFormatter.format_as_list,
    'json': OutputFormatter.format_as_json,
}
