"""
Unclaimed Domains MCP Server

An MCP server for finding referenced domains that are not registered and
could be taken over.
"""

__version__ = "0.1.0"


def main():
    """Main entry point for the CLI."""
    import sys

    # Handle CLI arguments before importing heavy dependencies
    if "--help" in sys.argv or "-h" in sys.argv:
        print_help()
        sys.exit(0)

    if "--version" in sys.argv or "-V" in sys.argv:
        print(f"unclaimed-domains-mcp {__version__}")
        sys.exit(0)

    if "--show-config" in sys.argv:
        show_config()
        sys.exit(0)

    setup_logging()

    # Default: run the MCP server
    from .server import mcp
    mcp.run()


def setup_logging():
    """Log to stderr; stdout carries the MCP protocol."""
    import logging
    import sys

    from .config import debug_enabled

    logging.basicConfig(
        level=logging.DEBUG if debug_enabled() else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def print_help():
    """Print help message."""
    print(f"""unclaimed-domains-mcp {__version__}

An MCP server that finds referenced domains which are not registered
(domain takeover risk), using RDAP.

Usage:
    unclaimed-domains-mcp               Run the MCP server
    unclaimed-domains-mcp --show-config Show current configuration
    unclaimed-domains-mcp --version     Show version
    unclaimed-domains-mcp --help        Show this help

Configuration:
    No API key is needed. Optional settings can be given as environment
    variables or in the config file (see --show-config):

    UNCLAIMED_DOMAINS_BOOTSTRAP_URL     RDAP bootstrap URL (IANA dns.json)
    UNCLAIMED_DOMAINS_RDAP_TIMEOUT      RDAP request timeout in seconds
    UNCLAIMED_DOMAINS_CACHE_BOOTSTRAP   Cache the bootstrap file on disk (1/0)
    UNCLAIMED_DOMAINS_PERSIST_SEEN      Remember checked domains across runs (1/0)
    UNCLAIMED_DOMAINS_PRIVATE_SUFFIXES  Treat PSL private suffixes as suffixes (1/0)
    UNCLAIMED_DOMAINS_SKIP              Extra comma-separated domains to skip
    UNCLAIMED_DOMAINS_DEBUG             Verbose logging (1/0)

Claude Code Setup:
    Add to ~/.claude/settings.json:
    {{
      "mcpServers": {{
        "unclaimed-domains": {{
          "command": "uvx",
          "args": ["unclaimed-domains-mcp"]
        }}
      }}
    }}
""")


def show_config():
    """Show current configuration."""
    from .config import get_config_file, get_settings
    from .rdap_bootstrap import get_cache_path
    from .store import get_store_path

    print("Configuration")
    print("=" * 50)
    print()

    config_file = get_config_file()
    print(f"Config file: {config_file}")
    print(f"  Exists: {config_file.exists()}")
    print()

    settings = get_settings()
    print(f"Bootstrap URL:      {settings.bootstrap_url}")
    print(f"Bootstrap timeout:  {settings.bootstrap_timeout:g}s")
    print(f"RDAP timeout:       {settings.rdap_timeout:g}s")
    print(f"Private suffixes:   {'yes' if settings.include_private_suffixes else 'no'}")
    print(f"Debug logging:      {'yes' if settings.debug else 'no'}")
    print()

    if settings.cache_bootstrap:
        print(f"Bootstrap cache:    {get_cache_path()}")
    else:
        print("Bootstrap cache:    disabled")
    if settings.persist_seen:
        print(f"Seen domains file:  {get_store_path()}")
    else:
        print("Seen domains file:  disabled (in memory only)")

    if settings.skip_domains:
        print()
        print("Extra skipped domains:")
        for domain in settings.skip_domains:
            print(f"  {domain}")
