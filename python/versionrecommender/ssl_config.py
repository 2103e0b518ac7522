"""HTTP sessions for reading descriptors and version listings.

Every session retries transient repository failures (502/503/504, connection
resets). When a CA bundle of a corporate SSL inspection proxy is present, the
https adapter trusts it in addition to the system store and accepts its
certificates despite missing key usage extensions (OpenSSL 3.x).
VERSIONRECOMMENDER_CA_BUNDLE names such a bundle explicitly.
"""

import logging
import os
import ssl
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from urllib3.util.ssl_ import create_urllib3_context

from . import __version__

logger = logging.getLogger(__name__)

CA_BUNDLE_ENV = "VERSIONRECOMMENDER_CA_BUNDLE"
REQUEST_TIMEOUT = 30
RETRY_STATUS = (502, 503, 504)

CORPORATE_CERT_PATHS = [
    "/Library/Application Support/Netskope/STAgent/data/netskope-cert-bundle.pem",  # Netskope macOS
    "/etc/netskope/cert-bundle.pem",  # Netskope Linux
]


def get_corporate_cert_path() -> Optional[str]:
    """Return the configured or detected CA bundle, if any."""
    configured = os.environ.get(CA_BUNDLE_ENV)
    if configured:
        if os.path.exists(configured):
            return configured
        logger.warning(f"{CA_BUNDLE_ENV} points to a missing file: {configured}")

    return next((path for path in CORPORATE_CERT_PATHS if os.path.exists(path)), None)


def repository_retry(total: int = 3) -> Retry:
    """Retry policy for GET requests against repositories."""
    return Retry(total=total, backoff_factor=0.5, status_forcelist=RETRY_STATUS,
                 allowed_methods=frozenset(['GET', 'HEAD']), raise_on_status=False)


class RepositoryAdapter(HTTPAdapter):
    """Retrying adapter, optionally trusting an extra CA bundle."""

    def __init__(self, cert_path: Optional[str] = None, **kwargs):
        self.cert_path = cert_path
        kwargs.setdefault('max_retries', repository_retry())
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        if self.cert_path:
            ctx = create_urllib3_context()
            ctx.load_default_certs()
            ctx.load_verify_locations(self.cert_path)
            ctx.verify_flags = ssl.VERIFY_DEFAULT
            kwargs['ssl_context'] = ctx
        return super().init_poolmanager(*args, **kwargs)


def create_session(cert_path: Optional[str] = None) -> requests.Session:
    """Session for repository and source downloads."""
    session = requests.Session()
    session.headers.update({"User-Agent": f"versionrecommender/{__version__}"})

    cert_path = cert_path or get_corporate_cert_path()
    if cert_path:
        logger.info(f"Using CA bundle {cert_path} for https connections")
    session.mount('https://', RepositoryAdapter(cert_path=cert_path))
    session.mount('http://', RepositoryAdapter())

    return session
