# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import re
from dataclasses import dataclass
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

REQUEST_TIMEOUT = 30  # seconds
USER_AGENT = "Mozilla/5.0 (compatible; PINNLO-Bot/1.0; +https://pinnlo.com/bot)"

# Page chrome that carries no article content.
_STRIPPED_TAGS = ["script", "style", "nav", "header", "footer", "aside", "noscript"]


@dataclass
class PageContent:
    url: str
    title: str
    description: str
    content: str


def is_valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def extract_page_content(url: str, html: bytes | str) -> PageContent:
    """
    Pulls the title, meta description and readable text out of an HTML page.

    Text comes from <main> or <article> when present, else the whole body,
    with whitespace collapsed.
    """
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""

    description = ""
    meta = soup.find("meta", attrs={"name": "description"}) or soup.find(
        "meta", attrs={"property": "og:description"}
    )
    if meta is not None:
        description = (meta.get("content") or "").strip()

    for tag in soup.find_all(_STRIPPED_TAGS):
        tag.decompose()
    root = soup.find("main") or soup.find("article") or soup.body or soup
    content = re.sub(r"\s+", " ", root.get_text(" ")).strip()
    return PageContent(url=url, title=title, description=description, content=content)


def fetch_page(url: str) -> PageContent:
    """
    Fetches a web page and extracts its readable content.

    Raises:
        requests.RequestException: If the page cannot be fetched.
    """
    response = requests.get(
        url, headers={"User-Agent": USER_AGENT}, timeout=REQUEST_TIMEOUT
    )
    response.raise_for_status()
    return extract_page_content(url, response.content)
