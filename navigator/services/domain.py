"""Domain normalization shared by every layer of the search pipeline.

Two notions of "same company" exist and must not be mixed:

- ``normalize_domain`` is the exact-host identity used for cache keys and
  consolidation. ``blog.acme.com`` and ``acme.com`` are different companies.
- ``root_domain`` collapses subdomains to the registrable domain and is only
  used for peer lookups ("find similar companies, excluding the seed").
"""

import re

import tldextract

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
_HOST_TERMINATORS_RE = re.compile(r"[/?#\\]")

# Bundled Public Suffix List snapshot only; never fetched at runtime.
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())

# Social networks, aggregators and directories that show up in web search
# results but are never the company being searched for.
NOISE_DOMAINS: frozenset[str] = frozenset({
    "linkedin.com", "facebook.com", "twitter.com", "x.com",
    "instagram.com", "youtube.com", "tiktok.com",
    "crunchbase.com", "zoominfo.com", "glassdoor.com",
    "indeed.com", "bloomberg.com", "reuters.com",
    "wikipedia.org", "reddit.com", "medium.com",
    "github.com", "g2.com", "trustpilot.com",
    "yelp.com", "bbb.org", "dnb.com",
})


def _normalize_once(value: str) -> str:
    value = value.strip()
    value = _SCHEME_RE.sub("", value)
    if value.startswith("//"):
        value = value[2:]

    host = _HOST_TERMINATORS_RE.split(value, maxsplit=1)[0]
    host = host.rpartition("@")[2]
    if host.startswith("["):
        # IPv6 literal, keep the brackets and drop the port
        host = host.split("]", 1)[0] + "]"
    else:
        host = host.partition(":")[0]

    host = host.strip().lower()
    if host.startswith("www."):
        host = host[4:]
    if host.endswith("."):
        host = host[:-1]
    return host


def normalize_domain(raw: str) -> str:
    """Canonicalize a free-form domain or URL into a comparable host key.

    Strips the scheme, a leading ``www.``, path/query/fragment, userinfo and
    port, lowercases, and removes the trailing dot. Never raises: anything
    that is not a string degrades to its lowercased, trimmed ``str()``.

    Examples:
        "https://www.Acme.com/about" -> "acme.com"
        "ACME.COM/" -> "acme.com"
        "acme.com:8443" -> "acme.com"

    Args:
        raw: Domain, host or URL as returned by a provider.

    Returns:
        Normalized host, or "" for empty input.
    """
    if raw is None:
        return ""
    if not isinstance(raw, str):
        return str(raw).strip().lower()

    # Repeat until stable so normalize_domain(normalize_domain(x)) == normalize_domain(x)
    previous = None
    value = raw
    while value != previous:
        previous = value
        value = _normalize_once(value)
    return value


def root_domain(raw: str) -> str:
    """Collapse a domain to its registrable root, e.g. ``eu.acme.com`` -> ``acme.com``.

    Multi-part public suffixes are respected (``www.company.co.uk`` ->
    ``company.co.uk``). Hosts without a public suffix (``localhost``, IP
    addresses) are returned normalized but otherwise unchanged.
    """
    host = normalize_domain(raw)
    if not host:
        return ""

    ext = _tld_extract(host)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return host


def is_noise_domain(domain: str) -> bool:
    """Check whether a domain belongs to a social network or directory site."""
    host = normalize_domain(domain)
    if not host:
        return False
    return any(host == nd or host.endswith(f".{nd}") for nd in NOISE_DOMAINS)
