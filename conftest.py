import os

import pytest
import requests

from amzscraper.config import ScraperConfig
from amzscraper.exceptions import NavigationError, PageStructureError
from amzscraper.order_id_collector import (
    ORDER_CARD_SELECTOR,
    ORDER_ID_SELECTOR,
    ORDER_YEAR_OPTIONS_SELECTOR,
    TOTAL_ORDERS_SELECTOR,
)
from amzscraper.page_query import PageQuery

BASE_URL = "https://shop.test"


class FakeElement:
    def __init__(self, text="", texts=None, attributes=None, children=None):
        self.text = text
        self.texts = texts or {}
        self.attributes = attributes or {}
        self.children = children or {}

    def has(self, selector):
        return selector in self.texts or bool(self.children.get(selector))


class FakePageQuery(PageQuery):
    """In-memory browser tab: each URL maps to a FakeElement tree or raw HTML."""

    def __init__(self, pages=None, sources=None):
        self.pages = pages or {}
        self.sources = sources or {}
        self.broken_urls = set()
        self.failing_downloads = set()
        self.navigations = []
        self.downloads = []
        self.current_url = None

    @property
    def root(self):
        return self.pages.get(self.current_url, FakeElement())

    def navigate(self, url, wait_policy="domcontentloaded", timeout=30):
        if url in self.broken_urls:
            raise NavigationError(f"Could not load {url}")
        self.navigations.append(url)
        self.current_url = url
        return url

    def wait_for_selector(self, selector, timeout):
        if not self.root.has(selector):
            raise PageStructureError(f"'{selector}' did not appear on {self.current_url}")

    def query_text(self, scope, selector, timeout=0):
        return (scope or self.root).texts.get(selector)

    def query_attribute(self, scope, selector, attribute, timeout=0):
        return (scope or self.root).attributes.get((selector, attribute))

    def query_all(self, scope, selector):
        return list((scope or self.root).children.get(selector, []))

    def element_text(self, element):
        return element.text

    def page_source(self):
        return self.sources.get(self.current_url, "<html></html>")

    def download_file(self, url, destination):
        if url in self.failing_downloads:
            raise requests.ConnectionError(f"download of {url} failed")
        os.makedirs(os.path.dirname(destination), exist_ok=True)
        with open(destination, "wb") as out:
            out.write(b"%PDF-1.4 fake")
        self.downloads.append((url, destination))
        return destination


def listing_page(order_ids, total_orders, years=(2024, 2023)):
    return FakeElement(
        texts={TOTAL_ORDERS_SELECTOR: f"{total_orders} Bestellungen"},
        children={
            ORDER_CARD_SELECTOR: [FakeElement(texts={ORDER_ID_SELECTOR: oid}) for oid in order_ids],
            ORDER_YEAR_OPTIONS_SELECTOR: [FakeElement(text=f"{y}") for y in years],
        },
    )


def make_order_ids(count, year=2024):
    return [f"302-{year}-{n:07d}" for n in range(count)]


@pytest.fixture
def config(tmp_path):
    return ScraperConfig(
        invoice_year=2024,
        download_dir=str(tmp_path / "downloads"),
        user_data_dir=str(tmp_path / "browser-data"),
        base_url=BASE_URL,
        min_delay_ms=800,
        max_delay_ms=2000,
    )


@pytest.fixture
def sleeps():
    """Records requested pauses instead of sleeping."""
    return []
