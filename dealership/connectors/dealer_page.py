# dealership/connectors/dealer_page.py
"""Connector scraping a partner dealer's stock page.

The page lists one element per vehicle carrying its attributes as ``data-*``
attributes, e.g.::

    <article data-vehicle-id="D-17" data-type="used" data-make="Audi"
             data-model="A4" data-year="2019" data-price="89 900 zł"
             data-mileage="120 000 km" data-fuel="Diesel">
      <img src="/photos/d17-1.jpg">
      <p class="description">...</p>
      <ul class="features"><li>Navigation</li></ul>
    </article>
"""
import os
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup, Tag
from dotenv import load_dotenv

from .base import Connector
from ..errors import FetchError
from ..utils import retry

load_dotenv()

FETCH_TIMEOUT = float(os.getenv("IMPORT_FETCH_TIMEOUT", "30"))

_GROUPED = re.compile(r"^\d{1,3}([.,])\d{3}(\1\d{3})*$")


def _number(text: Optional[str], cast=int):
    """Parse a price or mileage as dealers write it; empty -> None.

    Handles "189 900 zł", "89.900 zł", "120,000 km" and "1.234,50 zł". A lone
    separator followed by groups of exactly three digits is a thousands
    separator; otherwise the last separator is the decimal point.
    """
    if text is None:
        return None
    number = re.sub(r"[^\d.,]", "", text).strip(".,")
    if not re.search(r"\d", number):
        return None
    if "." in number and "," in number:
        decimal = "." if number.rfind(".") > number.rfind(",") else ","
        grouping = "," if decimal == "." else "."
        number = number.replace(grouping, "").replace(decimal, ".")
    elif _GROUPED.match(number):
        number = re.sub(r"[.,]", "", number)
    else:
        number = number.replace(",", ".")
    return cast(float(number)) if cast is int else cast(number)


class DealerPageConnector(Connector):
    name = "DealerPage"

    def __init__(self, page_url=None, timeout=FETCH_TIMEOUT, transport=None):
        self.page_url = page_url if page_url is not None else os.getenv("DEALER_PAGE_URL", "")
        self.timeout = timeout
        self.transport = transport

    def fetch_raw(self) -> List[Tag]:
        if not self.page_url:
            raise FetchError("DEALER_PAGE_URL not set")
        html = self._get_page()
        soup = BeautifulSoup(html, "lxml")
        return soup.select("[data-vehicle-id]")

    @retry(httpx.TransportError, tries=3, delay=2, backoff=2)
    def _get_page(self) -> str:
        with httpx.Client(timeout=self.timeout, transport=self.transport, follow_redirects=True) as client:
            resp = client.get(self.page_url)
            resp.raise_for_status()
            return resp.text

    def external_id_of(self, node: Any) -> str:
        if isinstance(node, Tag):
            return node.get("data-vehicle-id") or "?"
        return "?"

    def map_record(self, node: Tag) -> Dict[str, Any]:
        description = node.select_one(".description")
        images = [urljoin(self.page_url, img["src"]) for img in node.select("img[src]")]
        features = [li.get_text(strip=True) for li in node.select(".features li")]
        return {
            "external_id": node["data-vehicle-id"],
            "type": "NEW" if node.get("data-type", "").lower() == "new" else "USED",
            "make": node.get("data-make"),
            "model": node.get("data-model"),
            "trim": node.get("data-trim"),
            "year": _number(node.get("data-year")),
            "mileage": _number(node.get("data-mileage")),
            "fuel": node.get("data-fuel"),
            "gearbox": node.get("data-gearbox"),
            "body_type": node.get("data-body"),
            "power_hp": _number(node.get("data-power")),
            "color": node.get("data-color"),
            "price_gross": _number(node.get("data-price"), cast=float),
            "currency": node.get("data-currency") or None,
            "location": node.get("data-location"),
            "description_pl": description.get_text(" ", strip=True) if description else None,
            "images": images or None,
            "features": features or None,
        }
