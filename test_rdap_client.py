#!/usr/bin/env python3
"""
Test suite for Async RDAP Client

RDAP servers are simulated with httpx.MockTransport; no network access.

Usage:
    source .venv/bin/activate
    python test_rdap_client.py        # or: pytest test_rdap_client.py
"""

import sys
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import anyio
import httpx

from unclaimed_domains_mcp.rdap_bootstrap import RdapRegistry
from unclaimed_domains_mcp.rdap_client import (
    RDAP_ACCEPT,
    AsyncRDAPClient,
    HostRateLimiter,
    RateLimiterRegistry,
    RdapResult,
    Verdict,
    _parse_retry_after,
    classify_body,
    resolve_domains_async,
)


@dataclass
class TestResult:
    """Result of a single test."""
    __test__ = False

    name: str
    passed: bool
    message: str = ""


class TestRunner:
    """Runs tests and collects results."""
    __test__ = False

    def __init__(self):
        self.results: list[TestResult] = []
        self.current_section: str = ""

    def section(self, name: str):
        """Start a new test section."""
        self.current_section = name
        print(f"\n{'=' * 60}")
        print(f"  {name}")
        print(f"{'=' * 60}")

    def test(self, name: str, condition: bool, message: str = ""):
        """Record a test result."""
        result = TestResult(
            name=f"{self.current_section}: {name}", passed=condition, message=message
        )
        self.results.append(result)

        if condition:
            print(f"  ✓ {name}")
        else:
            print(f"  ✗ {name}")
            if message:
                print(f"    → {message}")

    def failures(self) -> str:
        """Describe failed tests (for assertion messages)."""
        return "; ".join(
            f"{r.name} ({r.message})" if r.message else r.name
            for r in self.results if not r.passed
        )

    def summary(self) -> bool:
        """Print summary and return True if all tests passed."""
        passed = sum(1 for r in self.results if r.passed)
        failed = sum(1 for r in self.results if not r.passed)
        total = len(self.results)

        print(f"\n{'=' * 60}")
        print(f"  SUMMARY: {passed}/{total} passed, {failed} failed")
        print(f"{'=' * 60}")

        if failed > 0:
            print("\nFailed tests:")
            for r in self.results:
                if not r.passed:
                    print(f"  ✗ {r.name}")
                    if r.message:
                        print(f"    → {r.message}")

        return failed == 0


# =============================================================================
# Simulated RDAP servers
# =============================================================================

COM_BASE = "https://rdap.test/com/v1/domain/"
ORG_BASE = "https://rdap.org.test/domain/"

BOOTSTRAP = {
    "services": [
        [["com", "net"], ["https://rdap.test/com/v1/"]],
        [["org"], ["https://rdap.org.test"]],
    ]
}

DOMAIN_OBJECT = {
    "objectClassName": "domain",
    "ldhName": "EXAMPLE.COM",
    "status": ["active"],
}


def reply(status: int, body: object = None, headers: dict | None = None):
    """Build a route handler returning a fixed response."""
    def handler(request: httpx.Request) -> httpx.Response:
        if body is None or isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body or b"", headers=headers)
        return httpx.Response(status, json=body, headers=headers)
    return handler


def fail(error: Exception):
    """Build a route handler raising a transport error."""
    def handler(request: httpx.Request) -> httpx.Response:
        raise error
    return handler


class RdapServer:
    """Routes request URLs to canned responses and records every request."""
    __test__ = False

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(str(request.url))
        if handler is None:
            return httpx.Response(404)
        return handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def registry() -> RdapRegistry:
    return RdapRegistry.from_document(BOOTSTRAP)


async def resolve_one(routes: dict, domain: str, reg: RdapRegistry | None = None):
    server = RdapServer(routes)
    async with AsyncRDAPClient(reg or registry(), transport=server.transport()) as client:
        result = await client.resolve(domain)
    return result, server


# =============================================================================
# Unit tests
# =============================================================================

def run_unit_tests(runner: TestRunner):
    """Run unit tests that don't make requests."""

    # =========================================================================
    # _parse_retry_after
    # =========================================================================
    runner.section("_parse_retry_after")

    result = _parse_retry_after("120")
    runner.test("parses integer seconds", result == 120.0, f"got {result}")

    result = _parse_retry_after("0")
    runner.test("parses zero seconds", result == 0.0, f"got {result}")

    result = _parse_retry_after("  60  ")
    runner.test("handles whitespace", result == 60.0, f"got {result}")

    result = _parse_retry_after("-5")
    runner.test("negative seconds clamp to zero", result == 0.0, f"got {result}")

    result = _parse_retry_after(None)
    runner.test("returns None for None input", result is None)

    result = _parse_retry_after("")
    runner.test("returns None for empty string", result is None)

    result = _parse_retry_after("not-a-number")
    runner.test("returns None for invalid input", result is None)

    future = datetime.now(timezone.utc) + timedelta(seconds=30)
    result = _parse_retry_after(format_datetime(future, usegmt=True))
    runner.test(
        "parses future HTTP date",
        result is not None and 20.0 < result <= 31.0,
        f"got {result}",
    )

    result = _parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT")
    runner.test("past HTTP date clamps to zero", result == 0.0, f"got {result}")

    # =========================================================================
    # classify_body
    # =========================================================================
    runner.section("classify_body")

    cases = [
        ("domain object", '{"objectClassName": "domain"}', (Verdict.REGISTERED, "domain_object")),
        ("objectClassName case-insensitive", '{"objectClassName": "Domain"}', (Verdict.REGISTERED, "domain_object")),
        ("errorCode 404", '{"errorCode": 404, "title": "Not Found"}', (Verdict.CLAIMABLE, "not_found")),
        ("errorCode \"404\"", '{"errorCode": "404"}', (Verdict.CLAIMABLE, "not_found")),
        ("errorCode 404.0", '{"errorCode": 404.0}', (Verdict.CLAIMABLE, "not_found")),
        ("errorCode 400", '{"errorCode": 400}', (Verdict.REGISTERED, "problem_document")),
        ("errorCode true", '{"errorCode": true}', (Verdict.REGISTERED, "problem_document")),
        ("errorCode text", '{"errorCode": "missing"}', (Verdict.REGISTERED, "problem_document")),
        ("help object", '{"rdapConformance": ["rdap_level_0"], "notices": []}', (Verdict.REGISTERED, "unrecognized_object")),
        ("empty body", "", (Verdict.UNKNOWN, "empty_body")),
        ("whitespace body", "  \n", (Verdict.UNKNOWN, "empty_body")),
        ("None body", None, (Verdict.UNKNOWN, "empty_body")),
        ("malformed JSON", "{not json", (Verdict.UNKNOWN, "malformed_json")),
        ("deeply nested JSON", "[" * 100000 + "]" * 100000, (Verdict.UNKNOWN, "malformed_json")),
        ("array", "[]", (Verdict.UNKNOWN, "not_an_object")),
        ("string", '"domain"', (Verdict.UNKNOWN, "not_an_object")),
    ]
    for name, body, expected in cases:
        got = classify_body(body)
        runner.test(name, got == expected, f"expected {expected}, got {got}")

    # =========================================================================
    # RdapResult / Verdict
    # =========================================================================
    runner.section("RdapResult")

    r = RdapResult(domain="free.com", verdict=Verdict.CLAIMABLE, reason="not_found")
    runner.test("claimable property for CLAIMABLE", r.claimable is True)
    runner.test("error is None for CLAIMABLE", r.error is None)

    r = RdapResult(domain="taken.com", verdict=Verdict.REGISTERED, reason="domain_object")
    runner.test("claimable property for REGISTERED", r.claimable is False)
    runner.test("error is None for REGISTERED", r.error is None)

    r = RdapResult(domain="slow.com", verdict=Verdict.UNKNOWN, reason="transport")
    runner.test("claimable property for UNKNOWN", r.claimable is False)
    runner.test("error returns reason for UNKNOWN", r.error == "transport")

    runner.test("CLAIMABLE value", Verdict.CLAIMABLE.value == "claimable")
    runner.test("REGISTERED value", Verdict.REGISTERED.value == "registered")
    runner.test("UNKNOWN value", Verdict.UNKNOWN.value == "unknown")


async def run_rate_limiter_tests(runner: TestRunner):
    """Test HostRateLimiter behavior."""

    # =========================================================================
    # HostRateLimiter - basic functionality
    # =========================================================================
    runner.section("HostRateLimiter")

    limiter = HostRateLimiter(host="rdap.test", max_concurrent=2, min_delay=0.1)

    await limiter.acquire()
    limiter.release()
    runner.test("basic acquire/release works", True)

    start = time.monotonic()
    await limiter.acquire()
    limiter.release()
    await limiter.acquire()
    elapsed = time.monotonic() - start
    limiter.release()
    runner.test(
        "enforces min_delay between requests",
        elapsed >= 0.1,
        f"elapsed {elapsed:.3f}s, expected >= 0.1s",
    )

    # =========================================================================
    # HostRateLimiter - rate limit backoff
    # =========================================================================
    runner.section("HostRateLimiter - Rate Limit Backoff")

    limiter = HostRateLimiter(host="backoff.test", max_concurrent=2)

    await limiter.acquire()
    limiter.release(rate_limited=True, retry_after=0.2)

    start = time.monotonic()
    await limiter.acquire()
    elapsed = time.monotonic() - start
    limiter.release()
    runner.test(
        "later request waits for retry_after",
        elapsed >= 0.15,
        f"elapsed {elapsed:.3f}s, expected >= 0.2s",
    )

    limiter2 = HostRateLimiter(host="exp.test", max_concurrent=2)
    await limiter2.acquire()
    limiter2.release(rate_limited=True)
    runner.test("tracks consecutive rate limits", limiter2._consecutive_rate_limits == 1)

    limiter3 = HostRateLimiter(host="cap.test")
    await limiter3.acquire()
    limiter3.release(rate_limited=True, retry_after=3600)
    pause = limiter3._retry_after_until - time.monotonic()
    runner.test("server Retry-After is capped", pause <= 60.0, f"pause {pause:.1f}s")

    # =========================================================================
    # HostRateLimiter - cancelled waits
    # =========================================================================
    runner.section("HostRateLimiter - Cancelled Waits")

    limiter = HostRateLimiter(host="cancel.test", max_concurrent=1)
    await limiter.acquire()
    limiter.release(rate_limited=True, retry_after=0.3)

    with anyio.move_on_after(0.05) as scope:
        await limiter.acquire()
    runner.test("wait during backoff was cancelled", scope.cancelled_caught)

    try:
        with anyio.fail_after(2):
            await limiter.acquire()
        limiter.release()
        runner.test("cancelled wait returns its permit", True)
    except TimeoutError:
        runner.test("cancelled wait returns its permit", False, "acquire blocked")

    # =========================================================================
    # RateLimiterRegistry
    # =========================================================================
    runner.section("RateLimiterRegistry")

    limiters = RateLimiterRegistry(max_concurrent=3, min_delay=0.1)

    limiter1 = await limiters.get_limiter("https://rdap.test/com/v1/domain/a.com")
    runner.test("creates limiter for host", limiter1.host == "rdap.test")
    runner.test("uses configured max_concurrent", limiter1.max_concurrent == 3)
    runner.test("uses configured min_delay", limiter1.min_delay == 0.1)

    limiter2 = await limiters.get_limiter("https://rdap.test/com/v1/domain/b.com")
    runner.test("returns same limiter for same host", limiter1 is limiter2)

    limiter3 = await limiters.get_limiter("https://rdap.org.test/domain/a.org")
    runner.test("returns different limiter for different host", limiter1 is not limiter3)


# =============================================================================
# Resolver tests against simulated servers
# =============================================================================

async def run_resolver_tests(runner: TestRunner):
    """Verdicts for every kind of server answer."""

    # =========================================================================
    # Not found
    # =========================================================================
    runner.section("Not found")

    result, server = await resolve_one({COM_BASE + "free.com": reply(404)}, "free.com")
    runner.test("404 is CLAIMABLE", result.verdict == Verdict.CLAIMABLE, f"got {result.verdict}")
    runner.test("reason not_found", result.reason == "not_found")
    runner.test("one request", len(server.requests) == 1, f"got {len(server.requests)}")
    runner.test(
        "queried base + domain",
        str(server.requests[0].url) == COM_BASE + "free.com",
        f"got {server.requests[0].url}",
    )
    runner.test(
        "RDAP media type preferred",
        server.requests[0].headers.get("Accept") == RDAP_ACCEPT,
        f"got {server.requests[0].headers.get('Accept')}",
    )

    result, _ = await resolve_one(
        {COM_BASE + "gone.com": reply(200, {"errorCode": 404, "title": "Not Found"})},
        "gone.com",
    )
    runner.test("200 with errorCode 404 is CLAIMABLE", result.claimable)

    result, _ = await resolve_one(
        {COM_BASE + "gone.com": reply(200, {"errorCode": "404"})},
        "gone.com",
    )
    runner.test("errorCode as string is CLAIMABLE", result.claimable)

    result, server = await resolve_one({}, "Free.COM")
    runner.test("domain lowercased before lookup", str(server.requests[0].url) == COM_BASE + "free.com")
    runner.test("result carries normalized domain", result.domain == "free.com")

    result, server = await resolve_one({}, "bücher.com")
    runner.test(
        "IDN queried as punycode",
        str(server.requests[0].url) == COM_BASE + "xn--bcher-kva.com",
        f"got {server.requests[0].url}",
    )

    class MirroredRegistry(RdapRegistry):
        def url_for_domain(self, domain):
            return "https://mirror.test/domain/" + domain

    result, server = await resolve_one({}, "free.com", MirroredRegistry.from_document(BOOTSTRAP))
    runner.test(
        "first URL comes from the registry",
        [str(r.url) for r in server.requests] == ["https://mirror.test/domain/free.com"],
        f"got {[str(r.url) for r in server.requests]}",
    )

    # =========================================================================
    # Registered
    # =========================================================================
    runner.section("Registered")

    result, _ = await resolve_one({COM_BASE + "example.com": reply(200, DOMAIN_OBJECT)}, "example.com")
    runner.test("domain object is REGISTERED", result.verdict == Verdict.REGISTERED)
    runner.test("reason domain_object", result.reason == "domain_object")
    runner.test("status code recorded", result.status_code == 200)

    result, _ = await resolve_one(
        {COM_BASE + "example.com": reply(200, {"errorCode": 400, "title": "Bad Request"})},
        "example.com",
    )
    runner.test("errorCode 400 is REGISTERED", result.verdict == Verdict.REGISTERED)

    result, _ = await resolve_one(
        {COM_BASE + "example.com": reply(200, {"rdapConformance": ["rdap_level_0"]})},
        "example.com",
    )
    runner.test("help object is REGISTERED", result.verdict == Verdict.REGISTERED)

    # =========================================================================
    # Redirects
    # =========================================================================
    runner.section("Redirects")

    registrar = "https://rdap.registrar.test/domain/example.com"
    result, server = await resolve_one(
        {
            COM_BASE + "example.com": reply(301, headers={"Location": registrar}),
            registrar: reply(200, DOMAIN_OBJECT),
        },
        "example.com",
    )
    runner.test("redirect followed to REGISTERED", result.verdict == Verdict.REGISTERED)
    runner.test("two requests", len(server.requests) == 2, f"got {len(server.requests)}")
    runner.test("one redirect counted", result.redirects == 1)
    runner.test("url is the final location", result.url == registrar, f"got {result.url}")
    runner.test(
        "RDAP media type sent after redirect",
        server.requests[-1].headers.get("Accept") == RDAP_ACCEPT,
    )

    result, server = await resolve_one(
        {COM_BASE + "free.com": reply(302, headers={"Location": "/mirror/free.com"})},
        "free.com",
    )
    runner.test(
        "relative Location resolved against request URL",
        len(server.requests) == 2 and str(server.requests[1].url) == "https://rdap.test/mirror/free.com",
        f"got {[str(r.url) for r in server.requests]}",
    )
    runner.test("404 after redirect is CLAIMABLE", result.claimable)

    chain = {
        COM_BASE + "hop.com": reply(307, headers={"Location": "https://a.test/hop.com"}),
        "https://a.test/hop.com": reply(308, headers={"Location": "https://b.test/hop.com"}),
        "https://b.test/hop.com": reply(303, headers={"Location": "https://c.test/hop.com"}),
        "https://c.test/hop.com": reply(200, DOMAIN_OBJECT),
    }
    result, server = await resolve_one(chain, "hop.com")
    runner.test("three redirects allowed", result.verdict == Verdict.REGISTERED, f"got {result.reason}")
    runner.test("four requests for three redirects", len(server.requests) == 4)

    loop = COM_BASE + "loop.com"
    result, server = await resolve_one({loop: reply(302, headers={"Location": loop})}, "loop.com")
    runner.test("endless redirect is UNKNOWN", result.verdict == Verdict.UNKNOWN)
    runner.test("reason redirect_limit", result.reason == "redirect_limit", f"got {result.reason}")
    runner.test("stops after four requests", len(server.requests) == 4, f"got {len(server.requests)}")

    result, server = await resolve_one({COM_BASE + "nowhere.com": reply(301)}, "nowhere.com")
    runner.test("redirect without Location is UNKNOWN", result.verdict == Verdict.UNKNOWN)
    runner.test("reason no_location", result.reason == "no_location")
    runner.test("not followed", len(server.requests) == 1)

    # =========================================================================
    # Unknown
    # =========================================================================
    runner.section("Unknown")

    result, server = await resolve_one({}, "example.zz")
    runner.test("unmapped TLD is UNKNOWN", result.verdict == Verdict.UNKNOWN)
    runner.test("reason tld_unsupported", result.reason == "tld_unsupported")
    runner.test("no request for unmapped TLD", len(server.requests) == 0)

    result, server = await resolve_one({}, "example.com", RdapRegistry())
    runner.test(
        "empty registry gives tld_unsupported",
        result.reason == "tld_unsupported" and len(server.requests) == 0,
    )

    result, server = await resolve_one({}, "localhost")
    runner.test("single label is invalid_domain", result.reason == "invalid_domain")
    result, server = await resolve_one({}, "")
    runner.test("empty domain is invalid_domain", result.reason == "invalid_domain")
    runner.test("no request for invalid domain", len(server.requests) == 0)

    result, server = await resolve_one(
        {COM_BASE + "busy.com": reply(429, headers={"Retry-After": "7"})},
        "busy.com",
    )
    runner.test("429 is UNKNOWN", result.verdict == Verdict.UNKNOWN)
    runner.test("reason rate_limit", result.reason == "rate_limit")
    runner.test("Retry-After recorded", result.retry_after == 7.0, f"got {result.retry_after}")
    runner.test("429 not retried", len(server.requests) == 1, f"got {len(server.requests)}")

    result, _ = await resolve_one(
        {COM_BASE + "down.com": fail(httpx.ConnectError("connection refused"))},
        "down.com",
    )
    runner.test("connection error is UNKNOWN", result.verdict == Verdict.UNKNOWN)
    runner.test("reason transport", result.reason == "transport")

    result, _ = await resolve_one(
        {COM_BASE + "slow.com": fail(httpx.ReadTimeout("timed out"))},
        "slow.com",
    )
    runner.test("timeout is transport", result.reason == "transport")

    result, _ = await resolve_one({COM_BASE + "err.com": reply(500, "oops")}, "err.com")
    runner.test("500 is UNKNOWN", result.verdict == Verdict.UNKNOWN)
    runner.test("reason http_status", result.reason == "http_status")
    runner.test("status code 500 recorded", result.status_code == 500)

    result, _ = await resolve_one({COM_BASE + "err.com": reply(403, "denied")}, "err.com")
    runner.test("403 is not claimable", result.verdict == Verdict.UNKNOWN)

    result, _ = await resolve_one({COM_BASE + "blank.com": reply(200, b"")}, "blank.com")
    runner.test("empty 200 body is UNKNOWN", result.reason == "empty_body", f"got {result.reason}")

    result, _ = await resolve_one({COM_BASE + "junk.com": reply(200, "<html>")}, "junk.com")
    runner.test("non-JSON 200 body is UNKNOWN", result.reason == "malformed_json")

    result, _ = await resolve_one({COM_BASE + "list.com": reply(200, [])}, "list.com")
    runner.test("JSON array is UNKNOWN", result.reason == "not_an_object", f"got {result.reason}")

    nested = "[" * 100000 + "]" * 100000
    result, _ = await resolve_one({COM_BASE + "deep.com": reply(200, nested)}, "deep.com")
    runner.test("deeply nested 200 body is UNKNOWN", result.verdict == Verdict.UNKNOWN)
    runner.test("reason malformed_json", result.reason == "malformed_json", f"got {result.reason}")

    # =========================================================================
    # Cancelled lookups
    # =========================================================================
    runner.section("Cancelled lookups")

    async def slow_handler(request: httpx.Request) -> httpx.Response:
        if "slow" in request.url.path:
            await anyio.sleep(5)
        return httpx.Response(404)

    async with AsyncRDAPClient(
        registry(),
        transport=httpx.MockTransport(slow_handler),
        max_concurrent_per_host=2,
    ) as client:
        async with anyio.create_task_group() as tg:
            for name in ("slow-a.com", "slow-b.com"):
                async def cancelled_lookup(domain=name):
                    with anyio.move_on_after(0.1):
                        await client.resolve(domain)
                tg.start_soon(cancelled_lookup)

        try:
            with anyio.fail_after(2):
                result = await client.resolve("next.com")
            runner.test("host still usable after cancelled lookups", result.claimable, f"got {result.reason}")
        except TimeoutError:
            runner.test("host still usable after cancelled lookups", False, "permits were not returned")


async def run_batch_tests(runner: TestRunner):
    """resolve_many, the convenience wrapper and client lifecycle."""

    # =========================================================================
    # resolve_many
    # =========================================================================
    runner.section("resolve_many")

    routes = {
        COM_BASE + "taken.com": reply(200, DOMAIN_OBJECT),
        ORG_BASE + "taken.org": reply(200, DOMAIN_OBJECT),
    }
    domains = ["taken.com", "free.com", "taken.org", "free.org", "nothing.zz"]
    server = RdapServer(routes)
    async with AsyncRDAPClient(registry(), transport=server.transport()) as client:
        results = await client.resolve_many(domains)
        empty = await client.resolve_many([])

    runner.test("one result per domain", len(results) == 5)
    runner.test("input order kept", [r.domain for r in results] == domains, f"got {[r.domain for r in results]}")
    runner.test(
        "verdicts",
        [r.verdict for r in results] == [
            Verdict.REGISTERED, Verdict.CLAIMABLE, Verdict.REGISTERED, Verdict.CLAIMABLE, Verdict.UNKNOWN,
        ],
        f"got {[r.verdict.value for r in results]}",
    )
    runner.test("empty input", empty == [])

    # =========================================================================
    # resolve_domains_async
    # =========================================================================
    runner.section("resolve_domains_async")

    server = RdapServer(routes)
    results = await resolve_domains_async(
        registry(), ["taken.com", "free.net"], timeout=5, transport=server.transport()
    )
    runner.test("returns list of RdapResult", all(isinstance(r, RdapResult) for r in results))
    runner.test(
        "verdicts",
        [r.verdict for r in results] == [Verdict.REGISTERED, Verdict.CLAIMABLE],
    )

    # =========================================================================
    # Lifecycle
    # =========================================================================
    runner.section("Lifecycle")

    client = AsyncRDAPClient(registry())
    try:
        await client.resolve("example.com")
        runner.test("resolve outside 'async with' raises", False, "no error raised")
    except RuntimeError:
        runner.test("resolve outside 'async with' raises", True)


# =============================================================================
# pytest entry points
# =============================================================================

def test_units():
    runner = TestRunner()
    run_unit_tests(runner)
    assert runner.summary(), runner.failures()


def test_rate_limiter():
    runner = TestRunner()
    anyio.run(run_rate_limiter_tests, runner)
    assert runner.summary(), runner.failures()


def test_resolver():
    runner = TestRunner()
    anyio.run(run_resolver_tests, runner)
    assert runner.summary(), runner.failures()


def test_batch():
    runner = TestRunner()
    anyio.run(run_batch_tests, runner)
    assert runner.summary(), runner.failures()


async def main():
    runner = TestRunner()

    print("\n" + "=" * 60)
    print("  ASYNC RDAP CLIENT - TEST SUITE")
    print("=" * 60)

    run_unit_tests(runner)
    await run_rate_limiter_tests(runner)
    await run_resolver_tests(runner)
    await run_batch_tests(runner)

    success = runner.summary()
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    anyio.run(main)
