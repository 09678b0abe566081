"""
Scan pipeline: text -> registrable domains -> RDAP verdicts -> findings.

Ties the extractor, the RDAP registry/client and the seen-domain store
together the way an HTTP-traffic scanner uses them:

1. skip non-textual content
2. extract registrable domains
3. drop provider/CDN domains that only add noise
4. drop domains already checked (first sighting only)
5. resolve the rest over RDAP
6. report CLAIMABLE domains as findings (UNKNOWN never is)
"""

import logging
from dataclasses import dataclass, field

import anyio.to_thread
import httpx

from .config import Settings
from .extractor import DomainExtractor, PublicSuffixResolver
from .rdap_bootstrap import RdapRegistry, get_cache_path
from .rdap_client import AsyncRDAPClient, RdapResult, Verdict
from .store import DomainStore, get_store_path

logger = logging.getLogger(__name__)

# Textual content types worth scanning
TEXTUAL_EXACT = frozenset({
    "text/plain",
    "text/html",
    "text/css",
    "text/csv",
    "text/javascript",
    "application/javascript",
    "application/ecmascript",
    "application/json",
    "application/ld+json",
    "application/x-ndjson",
    "application/xml",
    "text/xml",
    "application/xhtml+xml",
    "application/graphql",
    "application/x-www-form-urlencoded",
})
TEXTUAL_PREFIXES = ("text/",)

# Provider/CDN registrable domains that are noise for takeover checks
DEFAULT_SKIP_DOMAINS = frozenset({
    "amazonaws.com", "appspot.com", "googleapis.com", "googleusercontent.com",
    "gstatic.com", "cloudfront.net", "cloudflare.net", "fastly.net", "akamai.net",
    "akamaihd.net", "fbcdn.net", "edgesuite.net", "edgekey.net", "jsdelivr.net",
    "stackpathcdn.com", "cdn77.org", "www.google", "herokuapp.com", "vercel.app",
    "netlify.app", "azurewebsites.net", "windows.net", "google.com",
    "cloudflareinsights.com", "twimg.com", "cloudflare.com", "google-analytics.com",
    "freshworks.com", "twitter.com", "githubassets.com", "vimeo.com", "jquery.com",
    "msauth.net", "msftauth.net", "onetrust.com", "optimizely.com", "zendesk.com",
    "shopify.com", "wp.com", "prmcdn.io", "stripe.com", "cookielaw.org",
    "awswaf.com", "googletagmanager.com", "website-files.com",
    "googletagservices.com", "fontawesome.com", "hubspot.com", "typekit.com",
    "unpkg.com", "atlassian.com", "oktacdn.com",
})

FINDING_TITLE = "Possible domain takeover: {domain}"

FINDING_DETAIL = (
    "The application references the domain {domain}, which appears unregistered "
    "according to RDAP (HTTP 404 or equivalent). First seen in: {source}. "
    "An attacker who registers the domain could serve controlled content "
    "(scripts, CSS, images) or receive email addressed to it."
)

FINDING_REMEDIATION = [
    "Register the domain if it is intended to be owned.",
    "Otherwise remove or replace references to it (links, assets, CSP, redirects, emails).",
    "Consider CSP hardening and Subresource Integrity where applicable.",
]


def is_probably_textual(content_type: str | None) -> bool:
    """
    Check whether a Content-Type is worth scanning for domains.

    A missing header counts as textual (common on misconfigured servers).
    """
    if content_type is None:
        return True

    media_type = content_type.lower().split(";", 1)[0].strip()
    if not media_type:
        return True
    if media_type.startswith(TEXTUAL_PREFIXES) or media_type in TEXTUAL_EXACT:
        return True

    # Structured text types such as application/manifest+json
    return media_type.endswith(("+json", "+xml"))


def is_skipped_domain(domain: str, extra: frozenset[str] | set[str] = frozenset()) -> bool:
    """True if a registrable domain is on the provider/CDN skip list."""
    if not domain:
        return False
    domain = domain.lower()
    # AWS-hosted names are always worth a look
    if "amazonaws" in domain:
        return False
    return domain in DEFAULT_SKIP_DOMAINS or domain in extra


@dataclass
class Finding:
    """A referenced domain that RDAP reports as unregistered."""

    domain: str
    source: str
    title: str
    detail: str
    remediation: list[str]
    severity: str = "medium"
    confidence: str = "firm"

    @classmethod
    def for_domain(cls, domain: str, source: str | None) -> "Finding":
        source = source or "scanned text"
        return cls(
            domain=domain,
            source=source,
            title=FINDING_TITLE.format(domain=domain),
            detail=FINDING_DETAIL.format(domain=domain, source=source),
            remediation=list(FINDING_REMEDIATION),
        )


@dataclass
class ScanReport:
    """Everything one scan saw and decided."""

    textual: bool = True
    domains: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    already_seen: list[str] = field(default_factory=list)
    results: list[RdapResult] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)

    @property
    def unknown(self) -> list[RdapResult]:
        return [r for r in self.results if r.verdict == Verdict.UNKNOWN]


class Scanner:
    """
    Long-lived scan pipeline.

    The registry is bootstrapped lazily on first use, in a worker thread so
    the event loop is not blocked by the download.
    """

    def __init__(
        self,
        extractor: DomainExtractor | None = None,
        registry: RdapRegistry | None = None,
        store: DomainStore | None = None,
        rdap_timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
        skip_domains: list[str] | None = None,
    ) -> None:
        self.extractor = extractor or DomainExtractor()
        self.registry = registry or RdapRegistry()
        # DomainStore defines __len__, so an empty store is falsy
        self.store = store if store is not None else DomainStore()
        self._rdap_timeout = rdap_timeout
        self._transport = transport
        self._skip_domains = frozenset(d.lower() for d in (skip_domains or []))

    @classmethod
    def from_settings(cls, settings: Settings) -> "Scanner":
        """Build a scanner wired to the configured endpoints and cache files."""
        return cls(
            extractor=DomainExtractor(
                PublicSuffixResolver(include_private_domains=settings.include_private_suffixes)
            ),
            registry=RdapRegistry(
                url=settings.bootstrap_url,
                timeout=settings.bootstrap_timeout,
                cache_path=get_cache_path() if settings.cache_bootstrap else None,
            ),
            store=DomainStore(get_store_path() if settings.persist_seen else None),
            rdap_timeout=settings.rdap_timeout,
            skip_domains=settings.skip_domains,
        )

    async def ensure_bootstrapped(self) -> None:
        if not self.registry.bootstrapped:
            await anyio.to_thread.run_sync(self.registry.bootstrap)

    def extract(self, text: str | None) -> list[str]:
        return self.extractor.extract(text)

    async def check(self, domains: list[str]) -> list[RdapResult]:
        """Resolve explicit domains, in input order."""
        if not domains:
            return []
        await self.ensure_bootstrapped()
        async with AsyncRDAPClient(
            self.registry, timeout=self._rdap_timeout, transport=self._transport
        ) as client:
            return await client.resolve_many(domains)

    async def scan(
        self,
        text: str | None,
        content_type: str | None = None,
        source: str | None = None,
        skip_providers: bool = True,
        only_new: bool = True,
    ) -> ScanReport:
        """
        Scan text for referenced domains that could be taken over.

        Args:
            text: Raw text, e.g. response headers followed by the body
            content_type: Content-Type of the text; non-textual types are skipped
            source: Where the text came from (URL), used in findings
            skip_providers: Drop provider/CDN domains from the skip list
            only_new: Resolve each domain only on its first sighting

        Returns:
            ScanReport with per-domain results and findings for CLAIMABLE ones.
        """
        if not is_probably_textual(content_type):
            logger.debug("Skipping non-textual content type %s", content_type)
            return ScanReport(textual=False)

        report = ScanReport(domains=self.extract(text))

        to_check = []
        for domain in report.domains:
            if skip_providers and is_skipped_domain(domain, self._skip_domains):
                report.skipped.append(domain)
            elif only_new and not self.store.mark_if_new(domain):
                report.already_seen.append(domain)
            else:
                to_check.append(domain)

        report.results = await self.check(to_check)
        report.findings = [
            Finding.for_domain(r.domain, source) for r in report.results if r.claimable
        ]
        if report.findings:
            logger.info(
                "Found %d claimable domain(s): %s",
                len(report.findings),
                ", ".join(f.domain for f in report.findings),
            )
        return report
