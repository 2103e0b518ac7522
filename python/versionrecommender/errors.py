"""Exceptions and warnings raised by versionrecommender."""

from typing import Optional


class VersionRecommenderError(Exception):
    """Base class for all version recommender errors."""


class NoVersionError(VersionRecommenderError):
    """No provider recommends a version and the caller pinned none."""

    def __init__(self, group: str, name: str):
        self.group = group
        self.name = name
        super().__init__(
            f"Version for '{group}:{name}' not found! "
            f"Please check your dependency configuration and the version recommender version."
        )


class MalformedSourceError(VersionRecommenderError):
    """A version source could not be read or parsed."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Unable to read version source {source}: {reason}")


class MissingVersionParameterError(VersionRecommenderError):
    """set/setLocal was called without a version and none could be derived."""

    def __init__(self, provider_name: str):
        self.provider_name = provider_name
        super().__init__(
            f"No version available for provider '{provider_name}'. "
            f"Specify a version or the parameter '{provider_name}Version'."
        )


class NothingToStoreError(VersionRecommenderError):
    """store was called while no working version is set."""

    def __init__(self, provider_name: str):
        self.provider_name = provider_name
        super().__init__(f"Nothing to store for provider '{provider_name}'. Set or update a version first.")


class UpdateQueryError(VersionRecommenderError):
    """The available versions of a module could not be determined."""

    def __init__(self, provider_name: str, reason: str, module: Optional[str] = None):
        self.provider_name = provider_name
        self.module = module
        self.reason = reason
        target = f" ({module})" if module else ""
        super().__init__(f"Update of provider '{provider_name}'{target} failed: {reason}")


class UnknownProviderError(VersionRecommenderError):
    """An operation addressed a provider name that is not configured."""

    def __init__(self, provider_name: str):
        self.provider_name = provider_name
        super().__init__(f"There is no version recommendation provider with the name '{provider_name}'")


class ConfigurationError(VersionRecommenderError):
    """Invalid version recommender configuration."""


class MissingConfigurationWarning(UserWarning):
    """A publication dependency refers to a configuration that does not exist."""
