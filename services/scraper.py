import logging
import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import List, Optional

import requests

import config

logger = logging.getLogger(__name__)

SKIP_TAGS = {"script", "style", "noscript", "iframe", "svg"}
EMAIL_RE = re.compile(r"[a-zA-Z0-9._-]+@[a-zA-Z0-9._-]+\.[a-zA-Z0-9_-]+")
PHONE_RE = re.compile(r"(?:\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")


@dataclass
class ScrapedSite:
    url: str
    title: str = ""
    description: str = ""
    text: str = ""
    emails: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)


class _PageText(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.title: List[str] = []
        self.body: List[str] = []
        self.description = ""
        self._skip = 0
        self._in_head = False
        self._in_title = False

    def handle_starttag(self, tag, attrs):
        if tag in SKIP_TAGS:
            self._skip += 1
        elif tag == "head":
            self._in_head = True
        elif tag == "body":
            self._in_head = False
        elif tag == "title":
            self._in_title = True
        elif tag == "meta" and not self.description:
            a = dict(attrs)
            if (a.get("name") or "").lower() == "description":
                self.description = (a.get("content") or "").strip()

    def handle_endtag(self, tag):
        if tag in SKIP_TAGS:
            self._skip = max(0, self._skip - 1)
        elif tag == "head":
            self._in_head = False
        elif tag == "title":
            self._in_title = False

    def handle_data(self, data):
        if self._skip:
            return
        if self._in_title:
            self.title.append(data)
        elif not self._in_head:
            self.body.append(data)


def _unique(items) -> List[str]:
    return list(dict.fromkeys(items))


def normalize_url(url: str) -> str:
    url = (url or "").strip()
    if not url.startswith("http"):
        url = f"https://{url}"
    return url


def parse_html(url: str, html: str) -> ScrapedSite:
    parser = _PageText()
    parser.feed(html)
    parser.close()

    text = re.sub(r"\s+", " ", " ".join(parser.body)).strip()
    emails = [e for e in _unique(EMAIL_RE.findall(text)) if len(e) < 50]
    phones = [p for p in _unique(m.group(0) for m in PHONE_RE.finditer(text)) if len(p) >= 10]

    return ScrapedSite(
        url=url,
        title=re.sub(r"\s+", " ", "".join(parser.title)).strip(),
        description=parser.description,
        text=text,
        emails=emails,
        phones=phones,
    )


def scrape(url: str, timeout: Optional[float] = None) -> ScrapedSite:
    """Fetch a page and reduce it to title, description, text and contacts."""
    logger.info(f"[scrape] fetching {url}")
    r = requests.get(
        url,
        headers={"User-Agent": "Mozilla/5.0"},
        timeout=timeout or config.HTTP_TIMEOUT,
    )
    r.raise_for_status()
    site = parse_html(url, r.text)
    logger.info(
        f"[scrape] title={site.title!r} text={len(site.text)} chars "
        f"emails={len(site.emails)} phones={len(site.phones)}"
    )
    return site
