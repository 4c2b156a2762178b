from typing import Any, TypeVar
from ..models import FallbackFinding
T = TypeVar('T')

def deduplicate_by_key(findings: list[T]) -> list[T]:
    """Collapse findings sharing ``(method, sorted urls, type)``. First occurrence wins."""
    seen: dict[str, T] = {}
    for finding in findings:
        seen.setdefault(finding.dedup_key(), finding)
    return list(seen.values())

def deduplicate_fallbacks(fallbacks: list[FallbackFinding]) -> list[FallbackFinding]:
    seen: dict[str, FallbackFinding] = {}
    for fallback in fallbacks:
        seen.setdefault(fallback.type, fallback)
    return list(seen.values())

def deduplicate_distribution_items(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    seen: dict[str, dict[str, Any]] = {}
    for item in items:
        seen.setdefault(f"{item.get('type')}:{item.get('url')}", item)
    return list(seen.values())
