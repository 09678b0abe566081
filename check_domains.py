#!/usr/bin/env python3
"""
CLI tool to check whether domains are registered, using RDAP.

Usage:
    python check_domains.py example.com example.net
    python check_domains.py --text response.txt
    curl -si https://example.com | python check_domains.py --text -

Domains given on the command line are checked as-is; with --text, the
registrable domains referenced in the file are extracted and checked.
"""

import argparse
import asyncio
import json
import logging
import sys

from unclaimed_domains_mcp.config import get_settings
from unclaimed_domains_mcp.extractor import DomainExtractor, PublicSuffixResolver
from unclaimed_domains_mcp.rdap_bootstrap import RdapRegistry, get_cache_path
from unclaimed_domains_mcp.rdap_client import Verdict, resolve_domains_async


def read_text(path: str) -> str:
    """Read text from a file, or stdin for '-'."""
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8", errors="replace") as f:
        return f.read()


def main():
    parser = argparse.ArgumentParser(
        description="Check whether domains are registered, using RDAP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s example.com example.net
    %(prog)s --text response.txt
    %(prog)s --text - --json < response.txt
        """
    )
    parser.add_argument(
        "domains",
        nargs="*",
        help="Registrable domains to check"
    )
    parser.add_argument(
        "--text",
        type=str,
        metavar="FILE",
        default=None,
        help="Extract domains from FILE ('-' for stdin) and check them"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log RDAP activity to stderr"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(message)s",
        stream=sys.stderr,
    )

    settings = get_settings()

    domains = [d.strip().lower() for d in args.domains if d.strip()]
    if args.text:
        extractor = DomainExtractor(
            PublicSuffixResolver(include_private_domains=settings.include_private_suffixes)
        )
        domains.extend(extractor.extract(read_text(args.text)))

    # Remove duplicates while preserving order
    domains = list(dict.fromkeys(domains))

    if not domains:
        print("Error: No domains to check.", file=sys.stderr)
        sys.exit(1)

    registry = RdapRegistry(
        url=settings.bootstrap_url,
        timeout=settings.bootstrap_timeout,
        cache_path=get_cache_path() if settings.cache_bootstrap else None,
    )
    registry.bootstrap()
    if registry.size == 0:
        print("Warning: RDAP bootstrap unavailable; every result will be unknown.",
              file=sys.stderr)

    results = asyncio.run(
        resolve_domains_async(registry, domains, timeout=settings.rdap_timeout)
    )

    # Output results
    if args.json:
        output = [
            {
                "domain": r.domain,
                "verdict": r.verdict.value,
                "reason": r.reason,
                "status": r.status_code,
            }
            for r in results
        ]
        print(json.dumps(output, indent=2))
    else:
        # Pretty print
        for result in results:
            if result.verdict == Verdict.CLAIMABLE:
                status = "CLAIMABLE"
                symbol = "+"
            elif result.verdict == Verdict.REGISTERED:
                status = "REGISTERED"
                symbol = "-"
            else:
                status = f"UNKNOWN ({result.reason})"
                symbol = "?"

            print(f"[{symbol}] {result.domain}: {status}")


if __name__ == "__main__":
    main()
