"""Working and stored override version files of a provider."""

import logging
from pathlib import Path
from typing import Optional

from .errors import MissingVersionParameterError, NothingToStoreError
from .models import OverrideState, OverrideStatus
from .version_parser import VersionParser

logger = logging.getLogger(__name__)


def version_file_name(provider_name: str, short_kind: str) -> str:
    """File name of the override files, e.g. '.ivyFilter.version'."""
    return f".{short_kind}{provider_name[:1].upper()}{provider_name[1:]}.version"


def _read_version(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    version = path.read_text(encoding='utf-8').strip()
    return version or None


class OverrideStore:
    """
    Override state of one provider.

    The working file lives in the (ephemeral) work directory and is removed
    by reset. The stored file lives in the provider's config directory and
    is only written by store. Both contain nothing but the version string.

    States: UNSET -> WORKING(version, local) -> STORED(version).
    """

    def __init__(self, provider_name: str, short_kind: str, work_dir: Path, config_dir: Path):
        self.provider_name = provider_name
        file_name = version_file_name(provider_name, short_kind)
        self.working_file = Path(work_dir) / file_name
        self.stored_file = Path(config_dir) / file_name
        self.state = OverrideState()

    def initialize(self) -> OverrideState:
        """Read the state from disk: working file, else stored file, else unset."""
        working = _read_version(self.working_file)
        if working:
            self.state = OverrideState(OverrideStatus.WORKING, working, VersionParser.strip_qualifier(working) != working)
        else:
            stored = _read_version(self.stored_file)
            if stored:
                self.state = OverrideState(OverrideStatus.STORED, stored)
            else:
                self.state = OverrideState()

        logger.debug(f"Override state of {self.provider_name}: {self.state.status.value} {self.state.version or ''}")
        return self.state

    @property
    def version(self) -> Optional[str]:
        return self.state.version

    @property
    def status(self) -> OverrideStatus:
        return self.state.status

    def set(self, version: Optional[str], local: bool = False) -> Path:
        """Write the working version."""
        if not version or not version.strip():
            raise MissingVersionParameterError(self.provider_name)
        version = version.strip()

        self.working_file.parent.mkdir(parents=True, exist_ok=True)
        self.working_file.write_text(version, encoding='utf-8')
        self.state = OverrideState(OverrideStatus.WORKING, version, local)

        logger.info(f"Working version of {self.provider_name} set to {version} ({self.working_file})")
        return self.working_file

    def reset(self) -> None:
        """Remove the working file. The stored file is never touched."""
        if self.working_file.exists():
            self.working_file.unlink()
            logger.info(f"Removed working version of {self.provider_name} ({self.working_file})")
        else:
            logger.debug(f"No working version of {self.provider_name} to remove")
        self.initialize()

    def store(self) -> Path:
        """Persist the working version into the config directory."""
        if self.state.status != OverrideStatus.WORKING:
            raise NothingToStoreError(self.provider_name)

        version = self.state.version
        self.stored_file.parent.mkdir(parents=True, exist_ok=True)
        self.stored_file.write_text(version, encoding='utf-8')
        if self.working_file.exists():
            self.working_file.unlink()
        self.state = OverrideState(OverrideStatus.STORED, version)

        logger.info(f"Stored version {version} of {self.provider_name} in {self.stored_file}")
        return self.stored_file
