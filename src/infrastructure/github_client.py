import aiohttp
import asyncio
import logging
import ssl
from typing import Dict, Optional

from src.domain.exceptions import ClientInitError, RemoteAPIError

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
USER_AGENT = "github-insights"
REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=60, connect=10)
# Limit concurrent connections to avoid overwhelming GitHub's servers
CONNECTOR_LIMIT = 10


def create_ssl_context(ca_file: Optional[str] = None) -> ssl.SSLContext:
    """
    Builds the TLS context used for every outbound call.

    Args:
        ca_file (Optional[str]): CA bundle to trust. Defaults to the system store.

    Raises:
        ClientInitError: If the trust material cannot be located or loaded.
    """
    if ca_file is None:
        paths = ssl.get_default_verify_paths()
        if paths.cafile is None and paths.capath is None:
            raise ClientInitError("Could not find CA certificates.")

    try:
        return ssl.create_default_context(cafile=ca_file)
    except (OSError, ssl.SSLError) as e:
        raise ClientInitError(f"Could not load CA certificates from {ca_file}: {e}") from e


class GitHubRestClient:
    """
    Thin client for the GitHub REST API.
    Handles authentication and TLS configuration; every call is a single
    attempt, failures are reported to the caller.
    """

    def __init__(self, token: str, ca_file: Optional[str] = None, api_url: str = API_URL):
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": API_VERSION,
        }
        self.api_url = api_url.rstrip("/")
        self.ssl_context = create_ssl_context(ca_file)

    def open_session(self) -> aiohttp.ClientSession:
        """Opens an HTTP session bound to this client's TLS context."""
        return aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=CONNECTOR_LIMIT, ssl=self.ssl_context),
        )

    def repo_url(self, account: str, repository: str) -> str:
        return f"{self.api_url}/repos/{account}/{repository}"

    def clones_url(self, account: str, repository: str) -> str:
        return f"{self.repo_url(account, repository)}/traffic/clones"

    def views_url(self, account: str, repository: str) -> str:
        return f"{self.repo_url(account, repository)}/traffic/views"

    def org_url(self, account: str) -> str:
        return f"{self.api_url}/orgs/{account}"

    async def fetch(
        self,
        session: aiohttp.ClientSession,
        url: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Issues a GET request and returns the raw response body.

        Raises:
            RemoteAPIError: On network failure, timeout, an HTTP error status
                or a body that does not decode with its declared charset.
        """
        logger.debug(f"Making HTTP GET request to: {url}")
        try:
            async with session.get(url, headers=headers or self.headers, timeout=REQUEST_TIMEOUT) as response:
                body = await response.text()
                if response.status >= 400:
                    raise RemoteAPIError(url, f"HTTP {response.status}", status=response.status)
                return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteAPIError(url, str(e) or type(e).__name__) from e
        except UnicodeDecodeError as e:
            raise RemoteAPIError(url, f"undecodable body: {e}") from e
