"""Grounding of classifier-reported URLs in the analyzed source text.

A URL is trusted only if the source gives evidence for it. The checks are
substring heuristics and deliberately strict: a hostname assembled from
string concatenation will not match and its URL is dropped.
"""
import logging
import re
from urllib.parse import urlsplit

from ..models import DynamicLoadingFinding, NetworkingFinding

logger = logging.getLogger(__name__)

MARKERS = ("<dynamic>", "<arbitrary>")

API_KEY_PATTERNS = (
    (re.compile(r"/(v\d+)/[A-Za-z0-9_-]{20,}"), r"/\1/<api-key>"),
    (re.compile(r"/api/[A-Za-z0-9_-]{20,}"), "/api/<api-key>"),
    (re.compile(r"/[A-Za-z0-9_-]{32,}/rpc"), "/<api-key>/rpc"),
    (re.compile(r"/[A-Za-z0-9_-]{32,}$"), "/<api-key>"),
    (re.compile(r"([?&])(apiKey|api_key|key|token|access_token)=[A-Za-z0-9_-]{20,}", re.IGNORECASE), r"\1\2=<api-key>"),
)


def _parse_absolute(url: str):
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return parts


def normalize_url(url: str) -> str:
    """Lowercase the host and drop a trailing slash, keeping query and fragment."""
    if not url or url.startswith("<"):
        return url
    parts = _parse_absolute(url)
    if parts is None:
        relative = url[2:] if url.startswith("./") else url
        return relative[:-1] if relative.endswith("/") else relative
    path = parts.path[:-1] if parts.path.endswith("/") else parts.path
    query = f"?{parts.query}" if parts.query else ""
    fragment = f"#{parts.fragment}" if parts.fragment else ""
    return f"{parts.scheme}://{parts.netloc.lower()}{path or '/'}{query}{fragment}"


def extract_domain(url: str) -> str:
    if url.startswith("<"):
        return url
    parts = _parse_absolute(url)
    if parts is None or not parts.hostname:
        return url
    return parts.hostname.lower()


def strip_api_key(url: str) -> str:
    """Replace common API key patterns with an ``<api-key>`` placeholder."""
    if not url or url.startswith("<"):
        return url
    for pattern, replacement in API_KEY_PATTERNS:
        url = pattern.sub(replacement, url)
    return url


def is_url_grounded(url: str, source: str) -> bool:
    """Return True if ``url`` is corroborated by ``source``. First matching rule wins."""
    domain = extract_domain(url)
    if domain != url and domain in source:
        return True
    if url.startswith("/") or url.startswith("./"):
        bare = url[2:] if url.startswith("./") else url[1:]
        if url in source or (bare and bare in source):
            return True
    if url in MARKERS:
        return True
    return url in source


def validate_findings(
    findings: list[NetworkingFinding] | list[DynamicLoadingFinding],
    source: str,
    label: str = "",
) -> tuple[list, list[str]]:
    """Drop fabricated URLs. Returns the kept findings and the dropped URLs.

    A finding that arrived with no URLs means "any URL" and is kept. A
    finding whose URLs were all dropped is removed.
    """
    kept = []
    dropped: list[str] = []
    for finding in findings:
        if not finding.urls:
            kept.append(finding)
            continue
        valid = []
        for url in finding.urls:
            if is_url_grounded(url, source):
                valid.append(url)
            else:
                dropped.append(url)
                logger.warning("Dropping URL not found in source of %s: %s", label or "script", url)
        normalized = list(dict.fromkeys(normalize_url(strip_api_key(u)) for u in valid))
        if normalized:
            finding.urls = normalized
            kept.append(finding)
    return kept, dropped
