"""
Context-Aware Domain Extraction

Scans text (HTTP headers and bodies, typically) for domains that appear in
realistic reference contexts and reduces each one to its registrable domain
(eTLD+1) using the Public Suffix List.

Only six contexts are recognized:
- absolute URLs (http, https, ws, wss, ftp)
- scheme-relative references (//host/path)
- email addresses
- Host / Origin / Referer / Content-Location header lines
- Content-Security-Policy source lists
- CSS url(...) references

A bare domain regex over free text would match version strings, code
identifiers and prose, so nothing outside these contexts is reported.
"""

import logging
import re
from collections.abc import Callable, Iterator

import tldextract

logger = logging.getLogger(__name__)

# =============================================================================
# Patterns
# =============================================================================

URL_HOST = re.compile(r"\b(?:https?|wss?|ftp)://([^/\s\"'<>]+)", re.IGNORECASE)

# "//" not preceded by a word character, so paths like a//b are ignored
SCHEMELESS_HOST = re.compile(r"(?<!\w)//([^/\s\"'<>]+)", re.IGNORECASE)

# Local part starts at a boundary, so a long word run is scanned once
EMAIL_DOMAIN = re.compile(
    r"(?<![\w.%+-])[\w.%+-]+@((?:[^\W_]|[.-])+\.[^\W\d_]{2,63})", re.IGNORECASE
)

HEADER_HOST = re.compile(
    r"^(?:host|origin|referer|content-location)\s*:\s*([^\s:/]+)",
    re.IGNORECASE | re.MULTILINE,
)

CSP_DIRECTIVES = (
    "default-src",
    "connect-src",
    "script-src",
    "img-src",
    "media-src",
    "font-src",
    "style-src",
    "frame-src",
    "child-src",
    "form-action",
    "frame-ancestors",
    "manifest-src",
)

# Value list ends at the directive separator or at the end of the line/attribute
CSP_DIRECTIVE = re.compile(
    r"\b(?:" + "|".join(CSP_DIRECTIVES) + r")\s+([^;\r\n\"<>]+)",
    re.IGNORECASE,
)

CSS_URL = re.compile(r"url\(\s*([\"']?)([^\s\"')]+)\1\s*\)", re.IGNORECASE)

WILDCARD_PREFIX = re.compile(r"^\*\.?")

IPV4 = re.compile(
    r"^(?:(?:25[0-5]|2[0-4]\d|1?\d?\d)\.){3}(?:25[0-5]|2[0-4]\d|1?\d?\d)$"
)
BRACKETED_IPV6 = re.compile(r"^\[.+\](?::\d*)?$")

_LDH_LABEL = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_SURROUNDING_QUOTES = re.compile(r"^['\"]|['\"]$")
_REPEATED_DOTS = re.compile(r"\.{2,}")

CSP_KEYWORDS = frozenset({
    "self",
    "none",
    "unsafe-inline",
    "unsafe-eval",
    "unsafe-hashes",
    "strict-dynamic",
    "report-sample",
    "wasm-unsafe-eval",
})
CSP_HASH_PREFIXES = ("nonce-", "sha256-", "sha384-", "sha512-")
CSP_NON_HOST_SCHEMES = ("data:", "blob:", "filesystem:", "mediastream:")
CSP_URL_SCHEMES = ("http:", "https:", "ws:", "wss:")


# =============================================================================
# Host normalization
# =============================================================================

def trim_dots(value: str) -> str:
    """Strip leading/trailing dots and collapse runs of dots."""
    return _REPEATED_DOTS.sub(".", value).strip(".")


def to_ascii(host: str, std3: bool = True) -> str | None:
    """
    Convert a (possibly internationalized) host to its ASCII form.

    Args:
        host: Host name, Unicode or ASCII
        std3: Enforce STD3 rules (letters, digits and hyphens only, no
              leading or trailing hyphen in a label)

    Returns:
        Lowercase ASCII host with dots trimmed, or None if conversion fails.
    """
    try:
        ascii_host = host.encode("idna").decode("ascii")
    except UnicodeError:
        return None

    ascii_host = trim_dots(ascii_host.lower())
    if std3 and not all(_LDH_LABEL.match(label) for label in ascii_host.split(".")):
        return None
    return ascii_host


def host_from_authority(authority: str | None) -> str | None:
    """
    Normalize a URL authority (or anything shaped like one) to a bare host.

    Strips userinfo, path and port, lowercases and trims dots.
    IP literals are rejected.
    """
    if not authority:
        return None
    value = authority.strip()

    at = value.rfind("@")
    if at != -1:
        value = value[at + 1:]

    if BRACKETED_IPV6.match(value):
        return None

    value = value.split("/", 1)[0]
    value = value.split(":", 1)[0]

    value = trim_dots(value.lower())
    if not value or IPV4.match(value):
        return None
    return value


def host_from_url_like(value: str | None, strip_wildcard: bool = False) -> str | None:
    """Extract the host from an absolute or scheme-relative URL string."""
    if not value:
        return None
    match = URL_HOST.search(value) or SCHEMELESS_HOST.search(value)
    if not match:
        return None
    authority = match.group(1)
    if strip_wildcard:
        authority = WILDCARD_PREFIX.sub("", authority, count=1)
    return host_from_authority(authority)


def host_from_csp_token(token: str | None) -> str | None:
    """
    Classify one CSP source expression and return its host, if it has one.

    Keywords ('self', 'none', ...), nonce/hash sources and non-host schemes
    yield None. Wildcard hosts (*.example.com) lose the wildcard label.
    """
    if not token:
        return None
    value = _SURROUNDING_QUOTES.sub("", token.strip())
    if not value:
        return None

    lower = value.lower()
    if lower in CSP_KEYWORDS or lower.startswith(CSP_HASH_PREFIXES):
        return None
    if lower.startswith(CSP_NON_HOST_SCHEMES):
        return None
    if lower.startswith(CSP_URL_SCHEMES):
        return host_from_url_like(value, strip_wildcard=True)

    return host_from_authority(WILDCARD_PREFIX.sub("", value, count=1))


# =============================================================================
# Context passes
# =============================================================================

def url_hosts(text: str) -> Iterator[str | None]:
    for match in URL_HOST.finditer(text):
        yield host_from_authority(match.group(1))


def schemeless_hosts(text: str) -> Iterator[str | None]:
    for match in SCHEMELESS_HOST.finditer(text):
        yield host_from_authority(match.group(1))


def email_hosts(text: str) -> Iterator[str | None]:
    for match in EMAIL_DOMAIN.finditer(text):
        yield host_from_authority(match.group(1))


def header_hosts(text: str) -> Iterator[str | None]:
    for match in HEADER_HOST.finditer(text):
        yield host_from_authority(match.group(1))


def csp_hosts(text: str) -> Iterator[str | None]:
    for match in CSP_DIRECTIVE.finditer(text):
        for token in match.group(1).split():
            yield host_from_csp_token(token)


def css_url_hosts(text: str) -> Iterator[str | None]:
    for match in CSS_URL.finditer(text):
        yield host_from_url_like(match.group(2))


CONTEXT_PASSES: tuple[Callable[[str], Iterator[str | None]], ...] = (
    url_hosts,
    schemeless_hosts,
    email_hosts,
    header_hosts,
    csp_hosts,
    css_url_hosts,
)


# =============================================================================
# Public suffix reduction
# =============================================================================

class PublicSuffixResolver:
    """
    Reduces an ASCII host to its registrable domain (eTLD+1).

    By default only the Public Suffix List snapshot packaged with tldextract
    is used, so no network access happens. Pass live=True to let tldextract
    fetch (and cache) the current list.
    """

    def __init__(
        self,
        include_private_domains: bool = False,
        live: bool = False,
    ) -> None:
        if live:
            self._extract = tldextract.TLDExtract(
                include_psl_private_domains=include_private_domains,
            )
        else:
            self._extract = tldextract.TLDExtract(
                suffix_list_urls=(),
                cache_dir=None,
                include_psl_private_domains=include_private_domains,
            )

    def registrable(self, host: str) -> str | None:
        """Return the eTLD+1 of host, or None for public suffixes and unknown TLDs."""
        if not host:
            return None
        parts = self._extract(host)
        if not parts.suffix or not parts.domain:
            return None
        return f"{parts.domain}.{parts.suffix}".lower()


class DomainExtractor:
    """
    Extracts unique registrable domains from text.

    Usage:
        extractor = DomainExtractor()
        extractor.extract("see https://cdn.example.co.uk/app.js")
        # -> ["example.co.uk"]
    """

    def __init__(self, resolver: PublicSuffixResolver | None = None) -> None:
        self._resolver = resolver or PublicSuffixResolver()

    def registrable(self, host: str | None) -> str | None:
        """Convert a normalized host to its registrable domain, or None."""
        if not host:
            return None
        ascii_host = to_ascii(host)
        if not ascii_host or "." not in ascii_host:
            return None

        root = self._resolver.registrable(ascii_host)
        if not root or "." not in root:
            return None
        return root.lower()

    def extract(self, text: str | None) -> list[str]:
        """
        Extract registrable domains from every recognized context in text.

        Returns:
            Domains in order of first sighting, without duplicates.
        """
        if not text:
            return []

        found: dict[str, None] = {}
        for context_pass in CONTEXT_PASSES:
            for host in context_pass(text):
                root = self.registrable(host)
                if root and root not in found:
                    found[root] = None

        logger.debug("Extracted %d registrable domains", len(found))
        return list(found)


_default_extractor: DomainExtractor | None = None


def extract_domains(text: str | None) -> list[str]:
    """Extract registrable domains using a shared default extractor."""
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = DomainExtractor()
    return _default_extractor.extract(text)
