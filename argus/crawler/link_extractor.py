"""Link extraction: finds crawlable outbound links on a rendered page."""

from __future__ import annotations

import logging
from urllib.parse import urljoin

from playwright.async_api import Page

from argus.models.explorer import CrawlOptions, ExtractedLink
from argus.url_utils import normalize_url, should_crawl

logger = logging.getLogger(__name__)

_ANCHORS_SCRIPT = """() => {
    const anchors = Array.from(document.querySelectorAll('a[href]'));
    return {
        base: document.baseURI || '',
        links: anchors.map(a => ({
            href: a.getAttribute('href') || '',
            text: (a.textContent || '').trim(),
        })),
    };
}"""


def resolve_links(
    raw_links: list[dict], base: str, options: CrawlOptions
) -> list[ExtractedLink]:
    """Resolve, normalize, filter and de-duplicate raw ``{href, text}`` pairs."""
    extracted: list[ExtractedLink] = []
    seen: set[str] = set()

    for link in raw_links:
        href = (link.get("href") or "").strip()
        if not href:
            continue
        try:
            absolute = urljoin(base, href)
        except ValueError:
            logger.debug("Skipping unresolvable href: %r", href)
            continue

        url = normalize_url(absolute)
        if url in seen or not should_crawl(url, options):
            continue

        seen.add(url)
        extracted.append(ExtractedLink(url=url, href=href, text=link.get("text") or ""))

    return extracted


async def extract_links(page: Page, options: CrawlOptions) -> list[ExtractedLink]:
    """Return the crawlable links reachable from the page's current document."""
    try:
        data = await page.evaluate(_ANCHORS_SCRIPT)
    except Exception as e:
        logger.debug("Link extraction failed on %s: %s", page.url, e)
        return []

    base = data.get("base") or options.base_url
    links = resolve_links(data.get("links") or [], base, options)
    logger.debug("Extracted %d crawlable links from %s", len(links), base)
    return links
