"""
Async RDAP Client with Per-Host Rate Limiting

Resolves a registrable domain to a registration verdict:

- CLAIMABLE: the RDAP server reports the domain as not found
- REGISTERED: the server returned a domain object (or any non-404 document)
- UNKNOWN: no RDAP service for the TLD, transport failure, rate limiting,
  malformed response or too many redirects

Only HTTP 404 and an embedded problem document with errorCode 404 count as
"not found". Every other ambiguous answer resolves to REGISTERED or UNKNOWN.
Failed lookups are not retried.
"""

import asyncio
import json
import logging
import random
import time
from dataclasses import dataclass, field
from email.utils import parsedate_to_datetime
from enum import Enum
from urllib.parse import urlparse

import httpx

from .rdap_bootstrap import RdapRegistry, normalize_domain

logger = logging.getLogger(__name__)

# Redirect hops followed after the initial request (4 requests at most)
MAX_REDIRECTS = 3

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

RDAP_ACCEPT = "application/rdap+json, application/json;q=0.8, */*;q=0.1"

USER_AGENT = "UnclaimedDomainsMCP/1.0 (RDAP)"

# Upper bound for how long a host is paused after it answered 429
MAX_RETRY_AFTER = 60.0


class Verdict(Enum):
    """Registration verdict for a registrable domain."""

    CLAIMABLE = "claimable"  # 404 / errorCode 404 - can be registered
    REGISTERED = "registered"  # domain object or other RDAP document
    UNKNOWN = "unknown"  # could not be determined


@dataclass
class RdapResult:
    """Outcome of one RDAP lookup."""

    domain: str
    verdict: Verdict
    reason: str
    status_code: int | None = None
    url: str | None = None  # last URL requested
    redirects: int = 0
    retry_after: float | None = None

    @property
    def claimable(self) -> bool:
        """True only if RDAP confirmed the domain is not registered."""
        return self.verdict == Verdict.CLAIMABLE

    @property
    def error(self) -> str | None:
        """Reason the verdict could not be determined, if any."""
        return self.reason if self.verdict == Verdict.UNKNOWN else None


@dataclass
class HostRateLimiter:
    """Per-host rate limiter with concurrency control and backoff."""

    host: str
    max_concurrent: int = 2
    min_delay: float = 0.0

    _semaphore: asyncio.Semaphore = field(init=False, repr=False)
    _last_request_time: float = field(default=0.0, init=False)
    _retry_after_until: float = field(default=0.0, init=False)
    _consecutive_rate_limits: int = field(default=0, init=False)
    _lock: asyncio.Lock = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._semaphore = asyncio.Semaphore(self.max_concurrent)
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """
        Acquire permission to make a request to this host.

        A cancelled wait gives the permit back before re-raising.
        """
        await self._semaphore.acquire()

        try:
            async with self._lock:
                now = time.monotonic()

                # Honor retry_after from a previous 429 response
                if now < self._retry_after_until:
                    await asyncio.sleep(self._retry_after_until - now)
                    now = time.monotonic()

                # Enforce minimum delay between requests
                elapsed = now - self._last_request_time
                if elapsed < self.min_delay:
                    await asyncio.sleep(self.min_delay - elapsed)

                self._last_request_time = time.monotonic()
        except BaseException:
            self._semaphore.release()
            raise

    def release(
        self, rate_limited: bool = False, retry_after: float | None = None
    ) -> None:
        """
        Release the semaphore and update backoff state.

        A rate-limited release pauses later requests to this host; it never
        causes the current lookup to be retried.
        """
        if rate_limited:
            self._consecutive_rate_limits += 1
            if retry_after is not None:
                # Use server-provided Retry-After
                backoff = min(retry_after, MAX_RETRY_AFTER)
            else:
                # Exponential backoff with jitter: 2^n seconds, max 32s
                backoff = min(2**self._consecutive_rate_limits, 32)
                backoff += backoff * 0.25 * (random.random() * 2 - 1)  # +/- 25%
            self._retry_after_until = time.monotonic() + backoff
        else:
            # Successful request resets consecutive rate limit counter
            self._consecutive_rate_limits = 0

        self._semaphore.release()


class RateLimiterRegistry:
    """Creates and manages HostRateLimiter instances by host."""

    def __init__(
        self, max_concurrent: int = 2, min_delay: float = 0.0
    ) -> None:
        self._limiters: dict[str, HostRateLimiter] = {}
        self._lock = asyncio.Lock()
        self._max_concurrent = max_concurrent
        self._min_delay = min_delay

    async def get_limiter(self, url: str) -> HostRateLimiter:
        """Get or create a rate limiter for the given URL's host."""
        host = urlparse(url).netloc.lower()

        async with self._lock:
            if host not in self._limiters:
                self._limiters[host] = HostRateLimiter(
                    host=host,
                    max_concurrent=self._max_concurrent,
                    min_delay=self._min_delay,
                )
            return self._limiters[host]


def _parse_retry_after(header: str | None) -> float | None:
    """
    Parse Retry-After header value.

    Supports:
    - Seconds: "120" -> 120.0
    - HTTP date: "Wed, 21 Oct 2015 07:28:00 GMT" -> seconds until that time
    """
    if not header:
        return None

    header = header.strip()

    # Try parsing as integer (seconds)
    try:
        return max(0.0, float(header))
    except ValueError:
        pass

    # Try parsing as HTTP date
    try:
        dt = parsedate_to_datetime(header)
        delta = dt.timestamp() - time.time()
        return max(0.0, delta)
    except (ValueError, TypeError):
        pass

    return None


def _is_not_found_code(value: object) -> bool:
    """True if an errorCode value means 404 (number or numeric string)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 404
    if isinstance(value, str):
        try:
            return int(value) == 404
        except ValueError:
            return False
    return False


def classify_body(body: str | None) -> tuple[Verdict, str]:
    """
    Classify the body of an HTTP 200 RDAP response.

    Some servers report "not found" as a 200 carrying an RDAP problem
    document (RFC 9083 section 6) instead of a 404.

    Returns:
        (verdict, reason)
    """
    if body is None or not body.strip():
        return Verdict.UNKNOWN, "empty_body"

    try:
        data = json.loads(body)
    except (ValueError, RecursionError):
        return Verdict.UNKNOWN, "malformed_json"

    if not isinstance(data, dict):
        return Verdict.UNKNOWN, "not_an_object"

    # RDAP problem document
    if "errorCode" in data:
        if _is_not_found_code(data["errorCode"]):
            return Verdict.CLAIMABLE, "not_found"
        return Verdict.REGISTERED, "problem_document"

    object_class = data.get("objectClassName")
    if isinstance(object_class, str) and object_class.lower() == "domain":
        return Verdict.REGISTERED, "domain_object"

    # "help" responses and other objects: the server answered, so not claimable
    return Verdict.REGISTERED, "unrecognized_object"


class AsyncRDAPClient:
    """
    Async RDAP client with connection pooling and per-host rate limiting.

    Usage:
        registry = RdapRegistry()
        registry.bootstrap()
        async with AsyncRDAPClient(registry) as client:
            result = await client.resolve("example.com")
    """

    def __init__(
        self,
        registry: RdapRegistry,
        timeout: float = 15.0,
        max_redirects: int = MAX_REDIRECTS,
        transport: httpx.AsyncBaseTransport | None = None,
        max_concurrent_per_host: int = 2,
        min_delay_per_host: float = 0.0,
    ) -> None:
        self._registry = registry
        self._timeout = timeout
        self._max_redirects = max_redirects
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._limiters = RateLimiterRegistry(
            max_concurrent=max_concurrent_per_host,
            min_delay=min_delay_per_host,
        )

    async def __aenter__(self) -> "AsyncRDAPClient":
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers={"Accept": RDAP_ACCEPT, "User-Agent": USER_AGENT},
            follow_redirects=False,
            transport=self._transport,
            limits=httpx.Limits(
                max_connections=100,
                max_keepalive_connections=20,
            ),
        )
        return self

    async def __aexit__(self, *args) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(self, url: str) -> httpx.Response:
        """GET one URL under its host's rate limiter; the permit is always returned."""
        limiter = await self._limiters.get_limiter(url)
        await limiter.acquire()

        rate_limited = False
        retry_after = None
        try:
            response = await self._client.get(url, headers={"Accept": RDAP_ACCEPT})
            if response.status_code == 429:
                rate_limited = True
                retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            return response
        finally:
            limiter.release(rate_limited=rate_limited, retry_after=retry_after)

    async def resolve(self, domain: str) -> RdapResult:
        """Resolve one registrable domain to a verdict."""
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with' context.")

        ascii_domain = normalize_domain(domain)
        if not ascii_domain or "." not in ascii_domain:
            return RdapResult(
                domain=domain, verdict=Verdict.UNKNOWN, reason="invalid_domain"
            )

        url = self._registry.url_for_domain(ascii_domain)
        if url is None:
            logger.info("[RDAP] No RDAP mapping for %s", ascii_domain)
            return RdapResult(
                domain=ascii_domain,
                verdict=Verdict.UNKNOWN,
                reason="tld_unsupported",
            )

        redirects = 0

        for _ in range(self._max_redirects + 1):
            requested = url

            try:
                response = await self._get(url)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.warning("[RDAP] Request failed for %s: %s", url, e)
                return RdapResult(
                    domain=ascii_domain,
                    verdict=Verdict.UNKNOWN,
                    reason="transport",
                    url=url,
                    redirects=redirects,
                )

            code = response.status_code

            if code == 429:
                retry_after = _parse_retry_after(response.headers.get("Retry-After"))
                logger.warning(
                    "[RDAP] 429 rate limited for %s%s",
                    url,
                    f" (Retry-After: {retry_after:g}s)" if retry_after is not None else "",
                )
                return RdapResult(
                    domain=ascii_domain,
                    verdict=Verdict.UNKNOWN,
                    reason="rate_limit",
                    status_code=code,
                    url=url,
                    redirects=redirects,
                    retry_after=retry_after,
                )

            # Canonical "not found"
            if code == 404:
                return RdapResult(
                    domain=ascii_domain,
                    verdict=Verdict.CLAIMABLE,
                    reason="not_found",
                    status_code=code,
                    url=url,
                    redirects=redirects,
                )

            if code in REDIRECT_STATUSES:
                location = response.headers.get("Location", "").strip()
                if not location:
                    logger.warning("[RDAP] Redirect without Location for %s", url)
                    return RdapResult(
                        domain=ascii_domain,
                        verdict=Verdict.UNKNOWN,
                        reason="no_location",
                        status_code=code,
                        url=url,
                        redirects=redirects,
                    )
                try:
                    next_url = str(httpx.URL(url).join(location))
                except httpx.InvalidURL:
                    logger.warning("[RDAP] Unusable Location %r for %s", location, url)
                    return RdapResult(
                        domain=ascii_domain,
                        verdict=Verdict.UNKNOWN,
                        reason="bad_location",
                        status_code=code,
                        url=url,
                        redirects=redirects,
                    )
                logger.debug("[RDAP] %d redirect %s -> %s", code, url, next_url)
                url = next_url
                redirects += 1
                continue

            if code == 200:
                verdict, reason = classify_body(response.text)
                if verdict == Verdict.UNKNOWN:
                    logger.info("[RDAP] Unusable 200 body (%s) for %s", reason, url)
                return RdapResult(
                    domain=ascii_domain,
                    verdict=verdict,
                    reason=reason,
                    status_code=code,
                    url=url,
                    redirects=redirects,
                )

            logger.info("[RDAP] Non-200/404 status %d for %s", code, url)
            return RdapResult(
                domain=ascii_domain,
                verdict=Verdict.UNKNOWN,
                reason="http_status",
                status_code=code,
                url=url,
                redirects=redirects,
            )

        logger.warning(
            "[RDAP] Too many redirects (limit %d) for %s", self._max_redirects, ascii_domain
        )
        return RdapResult(
            domain=ascii_domain,
            verdict=Verdict.UNKNOWN,
            reason="redirect_limit",
            url=requested,
            redirects=redirects,
        )

    async def resolve_many(self, domains: list[str]) -> list[RdapResult]:
        """
        Resolve multiple domains in parallel with per-host rate limiting.

        Results are returned in the order of the input list.
        """
        if not domains:
            return []

        tasks = [self.resolve(domain) for domain in domains]
        results = await asyncio.gather(*tasks)
        return list(results)


async def resolve_domains_async(
    registry: RdapRegistry,
    domains: list[str],
    timeout: float = 15.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[RdapResult]:
    """
    Convenience function for resolving domains without managing client lifecycle.

    Args:
        registry: Bootstrapped RDAP registry
        domains: List of registrable domains to resolve
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)

    Returns:
        List of RdapResult objects
    """
    async with AsyncRDAPClient(
        registry, timeout=timeout, transport=transport
    ) as client:
        return await client.resolve_many(domains)
