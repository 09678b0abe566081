"""
RDAP Bootstrap Registry

Fetches the IANA RDAP bootstrap file once and holds the resulting
TLD -> RDAP domain-query base URL mapping as an immutable snapshot.

The bootstrap file maps TLDs to their authoritative RDAP servers. A failed
bootstrap leaves the registry empty; lookups then simply find nothing.
"""

import json
import logging
import os
import threading
import time
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

import httpx

from .extractor import to_ascii

logger = logging.getLogger(__name__)

# IANA bootstrap URL
IANA_BOOTSTRAP_URL = "https://data.iana.org/rdap/dns.json"

# Default cache expiry if no Cache-Control header (24 hours)
DEFAULT_CACHE_TTL = 86400

USER_AGENT = "UnclaimedDomainsMCP/1.0 (RDAP Bootstrap)"


class BootstrapError(ValueError):
    """The bootstrap document does not have the expected shape."""


def get_cache_path() -> Path:
    """Get the bootstrap cache file path in the user's cache directory."""
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', Path.home()))
    else:  # macOS, Linux
        base = Path(os.environ.get('XDG_CACHE_HOME', Path.home() / '.cache'))

    return base / 'unclaimed-domains-mcp' / 'rdap_bootstrap.json'


def _valid_cache(cache: object) -> bool:
    """Check the shape of a cache entry written by _save_cache."""
    if not isinstance(cache, dict):
        return False
    expires = cache.get("expires", 0)
    if isinstance(expires, bool) or not isinstance(expires, (int, float)):
        return False
    if not all(isinstance(cache.get(k, ""), str) for k in ("etag", "last_modified")):
        return False
    endpoints = cache.get("endpoints")
    return isinstance(endpoints, dict) and all(
        isinstance(tld, str) and isinstance(base, str)
        for tld, base in endpoints.items()
    )


def _load_cache(path: Path) -> dict | None:
    """Load cache from disk, returning None if not found or invalid."""
    try:
        if path.exists():
            with open(path, "r") as f:
                cache = json.load(f)
            if _valid_cache(cache):
                return cache
    except (ValueError, RecursionError, OSError):
        pass
    return None


def _save_cache(path: Path, cache: dict) -> bool:
    """Save cache to disk. Returns True on success."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(cache, f, indent=2)
        return True
    except OSError:
        return False


def _parse_max_age(cache_control: str) -> int | None:
    """Parse max-age from Cache-Control header."""
    for directive in cache_control.split(","):
        directive = directive.strip().lower()
        if directive.startswith("max-age="):
            try:
                return int(directive[8:])
            except ValueError:
                pass
    return None


def _expiry(response: httpx.Response) -> float:
    max_age = _parse_max_age(response.headers.get("Cache-Control", ""))
    return time.time() + (max_age if max_age else DEFAULT_CACHE_TTL)


def parse_bootstrap(data: object) -> dict[str, str]:
    """
    Parse IANA bootstrap format into TLD -> RDAP domain-query base mapping.

    Bootstrap format:
    {
        "services": [
            [["com", "net"], ["https://rdap.verisign.com/com/v1/"]],
            [["org"], ["https://rdap.publicinterestregistry.org/rdap/"]],
            ...
        ]
    }

    Only the first URL of each service is used. Its trailing slashes are
    stripped and "/domain/" is appended, so base + domain is a query URL.

    Raises:
        BootstrapError: if the document deviates from this shape.
    """
    if not isinstance(data, dict) or not isinstance(data.get("services"), list):
        raise BootstrapError("missing 'services' array")

    endpoints: dict[str, str] = {}
    for entry in data["services"]:
        if not isinstance(entry, list) or len(entry) < 2:
            raise BootstrapError(f"malformed service entry: {entry!r}")
        tlds, urls = entry[0], entry[1]
        if not isinstance(tlds, list) or not isinstance(urls, list):
            raise BootstrapError(f"malformed service entry: {entry!r}")
        if not urls:
            continue
        if not isinstance(urls[0], str):
            raise BootstrapError(f"non-string service URL: {urls[0]!r}")

        base = urls[0].rstrip("/") + "/domain/"
        for tld in tlds:
            if not isinstance(tld, str):
                raise BootstrapError(f"non-string TLD: {tld!r}")
            endpoints[tld.removeprefix(".").lower()] = base
    return endpoints


class RdapRegistry:
    """
    TLD -> RDAP endpoint registry, bootstrapped once from IANA.

    The mapping is a read-only snapshot replaced by a single assignment, so
    readers on any thread see either the old or the new mapping in full.

    Usage:
        registry = RdapRegistry()
        registry.bootstrap()
        registry.endpoint_for("com")
        # -> "https://rdap.verisign.com/com/v1/domain/"
    """

    def __init__(
        self,
        url: str = IANA_BOOTSTRAP_URL,
        timeout: float = 30.0,
        cache_path: Path | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._cache_path = cache_path
        self._transport = transport
        self._endpoints: Mapping[str, str] = MappingProxyType({})
        self._lock = threading.Lock()
        self._bootstrapped = False

    @classmethod
    def from_document(cls, data: object, **kwargs) -> "RdapRegistry":
        """Build an already-bootstrapped registry from a bootstrap document."""
        registry = cls(**kwargs)
        registry._publish(parse_bootstrap(data))
        registry._bootstrapped = True
        return registry

    @property
    def bootstrapped(self) -> bool:
        """True once a bootstrap attempt has completed, successful or not."""
        return self._bootstrapped

    @property
    def size(self) -> int:
        return len(self._endpoints)

    def _publish(self, endpoints: dict[str, str]) -> None:
        self._endpoints = MappingProxyType(dict(endpoints))

    def bootstrap(self) -> None:
        """
        Load the TLD mapping. Only the first call has any effect.

        Concurrent callers wait for the first attempt to finish. Failures are
        logged and leave the registry empty.
        """
        if self._bootstrapped:
            return
        with self._lock:
            if self._bootstrapped:
                return
            try:
                self._publish(self._fetch())
                logger.info("[RDAP] Loaded %d TLD mappings", len(self._endpoints))
            except (httpx.HTTPError, httpx.InvalidURL, ValueError, RecursionError) as e:
                logger.warning("[RDAP] Bootstrap failed: %s", e)
                self._publish({})
            finally:
                self._bootstrapped = True

    def _fetch(self) -> dict[str, str]:
        """
        Fetch the bootstrap mapping, going through the disk cache if enabled.

        Uses conditional GET (If-Modified-Since, If-None-Match) when an
        expired cache entry exists.
        """
        cache = _load_cache(self._cache_path) if self._cache_path else None

        if cache and time.time() < cache.get("expires", 0):
            logger.debug("[RDAP] Using cached bootstrap from %s", self._cache_path)
            return cache["endpoints"]

        headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if cache:
            if cache.get("last_modified"):
                headers["If-Modified-Since"] = cache["last_modified"]
            if cache.get("etag"):
                headers["If-None-Match"] = cache["etag"]

        with httpx.Client(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            response = client.get(self._url, headers=headers)

        if response.status_code == 304 and cache:
            # Not modified - extend expiry based on new Cache-Control
            cache["expires"] = _expiry(response)
            _save_cache(self._cache_path, cache)
            return cache["endpoints"]

        if response.status_code != 200:
            raise BootstrapError(f"IANA dns.json HTTP {response.status_code}")

        endpoints = parse_bootstrap(response.json())

        if self._cache_path:
            _save_cache(self._cache_path, {
                "last_modified": response.headers.get("Last-Modified", ""),
                "etag": response.headers.get("ETag", ""),
                "expires": _expiry(response),
                "endpoints": endpoints,
            })
        return endpoints

    def endpoint_for(self, tld: str | None) -> str | None:
        """
        Get the RDAP domain-query base URL for a TLD.

        Args:
            tld: The top-level domain, with or without a leading dot

        Returns:
            Base URL ending in "/domain/", or None if the TLD is not mapped.
        """
        if not tld:
            return None
        return self._endpoints.get(tld.removeprefix(".").lower())

    def is_tld_supported(self, tld: str) -> bool:
        """Check if a TLD has an RDAP service in the current snapshot."""
        return self.endpoint_for(tld) is not None

    def supported_tlds(self) -> list[str]:
        """Get all mapped TLDs, sorted alphabetically."""
        return sorted(self._endpoints)

    def url_for_domain(self, domain: str | None) -> str | None:
        """
        Build the full RDAP query URL for a domain.

        "example.com" -> "https://rdap.verisign.com/com/v1/domain/example.com"
        """
        ascii_domain = normalize_domain(domain)
        if not ascii_domain or "." not in ascii_domain:
            return None
        base = self.endpoint_for(ascii_domain.rsplit(".", 1)[1])
        if base is None:
            return None
        return base + ascii_domain


def normalize_domain(domain: str | None) -> str | None:
    """Lowercase, trim dots and convert to ASCII (IDN). None on failure."""
    if not domain:
        return None
    ascii_domain = to_ascii(domain.strip().lower(), std3=False)
    return ascii_domain or None
