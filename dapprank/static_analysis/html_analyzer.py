"""Static extraction from HTML documents."""
import logging
from typing import Any

from bs4 import BeautifulSoup

from ..config.constants import DappRankConstants

logger = logging.getLogger(__name__)


def _rel_values(tag) -> list[str]:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return [r.lower() for r in rel]


def is_inline_javascript(script_type: str | None) -> bool:
    if not script_type:
        return True
    script_type = script_type.strip().lower()
    return script_type in DappRankConstants.INLINE_SCRIPT_TYPES or "javascript" in script_type


def analyze_html(html: str) -> dict[str, Any]:
    """Extract metadata, external resources and inline scripts from an HTML document.

    Returns the keys merged into the file's report entry: ``metadata``,
    ``distributionPurity`` and ``inlineScripts``.
    """
    soup = BeautifulSoup(html, "html.parser")
    description = soup.find("meta", attrs={"name": "description"})
    metadata = {
        "title": soup.title.get_text().strip() if soup.title else "",
        "description": (description.get("content") or "") if description else "",
    }

    external_media = []
    for tag in soup.find_all(list(DappRankConstants.EXTERNAL_MEDIA_TAGS)):
        src = tag.get("src")
        if src and src.startswith("http"):
            external_media.append({"type": tag.name.lower(), "url": src})

    external_scripts = []
    for tag in soup.find_all(["script", "link"]):
        url = tag.get("src") or tag.get("href")
        if not url or not url.startswith("http"):
            continue
        if tag.name == "link" and any(r in DappRankConstants.LINK_NON_FETCHING_REL_VALUES for r in _rel_values(tag)):
            continue
        external_scripts.append({"type": tag.name.lower(), "url": url})

    inline_scripts = []
    for tag in soup.find_all("script"):
        if not is_inline_javascript(tag.get("type")):
            logger.debug("Skipping non-JS script of type %s", tag.get("type"))
            continue
        content = tag.string if tag.string is not None else tag.get_text()
        if content and content.strip():
            inline_scripts.append(str(content))

    return {
        "metadata": metadata,
        "distributionPurity": {"externalScripts": external_scripts, "externalMedia": external_media},
        "inlineScripts": inline_scripts,
    }


def find_link_hrefs(html: str, predicate) -> list[tuple[str, dict[str, Any]]]:
    """Return ``(href, attrs)`` for every ``<link>`` whose rel values satisfy ``predicate``."""
    soup = BeautifulSoup(html, "html.parser")
    links = []
    for tag in soup.find_all("link"):
        href = tag.get("href")
        if href and predicate(_rel_values(tag)):
            links.append((href, dict(tag.attrs)))
    return links
