"""
Unclaimed Domains MCP Server

An MCP server for finding externally referenced domains that are not
registered (domain takeover risk):
- Domain extraction from HTTP traffic and other text
- Registration status via RDAP (IANA bootstrap, direct registry queries)
- Scans that report claimable domains as findings
"""

import json
import logging
from dataclasses import asdict

from mcp.server.fastmcp import FastMCP

from .config import debug_enabled, get_settings
from .rdap_client import RdapResult, Verdict
from .scanner import Scanner

# Suppress httpx request logging by default
# Set UNCLAIMED_DOMAINS_DEBUG=1 to enable verbose HTTP logging
if not debug_enabled():
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

# Server version
VERSION = "0.1.0"

# Initialize the MCP server
mcp = FastMCP("unclaimed-domains")
mcp._mcp_server.version = VERSION

# Upper bound on explicit domains per check_domains call
MAX_DOMAINS_PER_CALL = 200


# =============================================================================
# Scanner
# =============================================================================

_scanner: Scanner | None = None


def get_scanner() -> Scanner:
    """Get the process-wide scanner, creating it from settings on first use."""
    global _scanner
    if _scanner is None:
        _scanner = Scanner.from_settings(get_settings())
    return _scanner


def set_scanner(scanner: Scanner | None) -> None:
    """Replace the process-wide scanner (None resets to settings on next use)."""
    global _scanner
    _scanner = scanner


def _result_entry(r: RdapResult) -> dict:
    entry = {"domain": r.domain, "reason": r.reason}
    if r.status_code is not None:
        entry["status"] = r.status_code
    if r.retry_after is not None:
        entry["retryAfter"] = r.retry_after
    return entry


# =============================================================================
# MCP Tools
# =============================================================================

@mcp.tool()
def version() -> str:
    """
    Get the version of the Unclaimed Domains MCP server.

    Returns:
        Version string including server name and version number.
    """
    return f"Unclaimed Domains MCP Server version {VERSION}"


@mcp.tool()
def extract_domains(text: str) -> str:
    """
    Extract registrable domains (eTLD+1) referenced in text.

    Only realistic reference contexts are considered: URLs, scheme-relative
    references, email addresses, Host/Origin/Referer/Content-Location headers,
    Content-Security-Policy source lists and CSS url(...) values.

    Args:
        text: Raw text, e.g. HTTP response headers followed by the body

    Returns:
        JSON with the unique domains in order of first appearance.
    """
    if not text or not text.strip():
        return json.dumps({"error": "No text provided"})

    return json.dumps({"domains": get_scanner().extract(text)})


@mcp.tool()
async def check_domains(
    domains: list[str],
    onlyReportClaimable: bool = False
) -> str:
    """
    Check whether domains are registered, using RDAP.

    Args:
        domains: Registrable domains to check (e.g. ["example.com"])
        onlyReportClaimable: If true, only return claimable domains in response

    Returns:
        JSON with claimable domains, registered domains and unknown results
        (no RDAP service, rate limited, network error...) unless
        onlyReportClaimable, plus a summary.
    """
    if not domains:
        return json.dumps({"error": "No domains provided"})

    # Remove blanks and duplicates while preserving order
    cleaned = list(dict.fromkeys(d.strip().lower() for d in domains if d and d.strip()))

    if not cleaned:
        return json.dumps({"error": "No valid domains provided"})
    if len(cleaned) > MAX_DOMAINS_PER_CALL:
        return json.dumps({
            "error": f"Too many domains ({len(cleaned)}). Maximum is {MAX_DOMAINS_PER_CALL}"
        })

    results = await get_scanner().check(cleaned)

    claimable = [r.domain for r in results if r.verdict == Verdict.CLAIMABLE]
    registered = [r.domain for r in results if r.verdict == Verdict.REGISTERED]
    unknown = [_result_entry(r) for r in results if r.verdict == Verdict.UNKNOWN]

    response = {"claimable": claimable}
    if not onlyReportClaimable:
        response["registered"] = registered
        response["unknown"] = unknown

    response["summary"] = {
        "checked": len(results),
        "claimable": len(claimable),
        "registered": len(registered),
        "unknown": len(unknown),
    }
    return json.dumps(response)


@mcp.tool()
async def scan_text(
    text: str,
    contentType: str | None = None,
    source: str | None = None,
    skipProviderDomains: bool = True,
    onlyNew: bool = True
) -> str:
    """
    Scan text for referenced domains that could be taken over.

    Extracts domains, drops common provider/CDN domains, checks each domain
    once per session (unless onlyNew is false) and reports the ones RDAP
    says are not registered.

    Args:
        text: Raw text, e.g. HTTP response headers followed by the body
        contentType: Content-Type of the text; binary types are not scanned
        source: Where the text came from (e.g. the request URL)
        skipProviderDomains: If true, skip well-known provider/CDN domains
        onlyNew: If true, skip domains already checked in earlier scans

    Returns:
        JSON with extracted domains, skipped/already seen domains, findings
        for claimable domains, unknown results and a summary.
    """
    if not text or not text.strip():
        return json.dumps({"error": "No text provided"})

    report = await get_scanner().scan(
        text,
        content_type=contentType,
        source=source,
        skip_providers=skipProviderDomains,
        only_new=onlyNew,
    )

    if not report.textual:
        return json.dumps({
            "domains": [],
            "findings": [],
            "note": f"Content type {contentType} is not textual; nothing scanned",
        })

    response = {
        "domains": report.domains,
        "skipped": report.skipped,
        "alreadySeen": report.already_seen,
        "findings": [asdict(f) for f in report.findings],
        "unknown": [_result_entry(r) for r in report.unknown],
        "summary": {
            "extracted": len(report.domains),
            "checked": len(report.results),
            "claimable": len(report.findings),
            "unknown": len(report.unknown),
        },
    }
    return json.dumps(response)


@mcp.tool()
async def rdap_status(tld: str | None = None, listTlds: bool = False) -> str:
    """
    Get the state of the RDAP bootstrap registry.

    Triggers the one-time bootstrap if it has not run yet.

    Args:
        tld: Optional TLD to look up (e.g. "com" or ".dev")
        listTlds: If true, include every TLD with RDAP service

    Returns:
        JSON with whether the bootstrap ran and how many TLDs have RDAP
        service, plus the TLD lookup and TLD list when requested.
    """
    scanner = get_scanner()
    await scanner.ensure_bootstrapped()
    registry = scanner.registry
    response = {
        "bootstrapped": registry.bootstrapped,
        "supportedTlds": registry.size,
    }
    if tld is not None:
        response["tld"] = {
            "tld": tld,
            "supported": registry.is_tld_supported(tld),
            "endpoint": registry.endpoint_for(tld),
        }
    if listTlds:
        response["tlds"] = registry.supported_tlds()
    return json.dumps(response)


@mcp.tool()
def reset_seen_domains() -> str:
    """
    Forget which domains were already checked, so later scans check them again.

    Returns:
        JSON with the number of domains forgotten.
    """
    removed = get_scanner().store.clear()
    return json.dumps({"cleared": removed})
