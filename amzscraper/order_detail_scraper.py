#!/usr/bin/env python3
"""
Order detail scraping for one year.

For every id in a year's id ledger that is not yet in the detail ledger:
open the order summary, read its fields and items, collect the PDF invoice
links from the invoice view, download them, then append the order to the
detail ledger and rewrite it. Single fields that are missing or slow come
back as empty strings. An order that fails for a recoverable reason is
logged and left out, so the next run tries it again.
"""

import os
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup
from selenium.common.exceptions import TimeoutException

from amzscraper.base_scraper import BaseScraper
from amzscraper.checkpoint_manager import append_unique_order
from amzscraper.exceptions import PageStructureError
from amzscraper.order_data import InvoiceLink, Order, OrderItem, YearOrderIds
from amzscraper.page_query import text_or_default
from amzscraper.text_utils import (
    extract_int,
    parse_localized_date,
    regex_group_or_empty,
    sanitize_filename_part,
)

logger = logging.getLogger(__name__)

ORDER_DETAILS_SELECTOR = "#orderDetails"
PAYMENT_INSTRUMENT_SELECTOR = "[data-testid='payment-instrument']"
ORDER_DATE_SELECTOR = "[data-component='orderDate']"
CHARGE_LINE_SELECTOR = "[data-component='chargeSummary'] li"
CHARGE_LINE_CONTENT_SELECTOR = ".od-line-item-row-content"
SHIPPING_NAME_SELECTOR = "[data-component='shippingAddress'] li:nth-child(1)"
SHIPPING_ADDRESS_SELECTOR = "[data-component='shippingAddress'] li:nth-child(2)"
ITEM_GRID_SELECTOR = "[data-component='shipments'] .a-fixed-left-grid"
ITEM_TITLE_LINK_SELECTOR = "[data-component='itemTitle'] a"
MERCHANT_LINK_SELECTOR = "[data-component='orderedMerchant'] a"
QUANTITY_SELECTOR = "[data-component='quantity']"
UNIT_PRICE_SELECTOR = "[data-component='unitPrice'] .a-offscreen"

ASIN_PATTERN = r"/dp/([A-Z0-9]+)"
MERCHANT_ID_PATTERN = r"seller=([A-Z0-9]+)"

# Per-order failures that skip the order but keep the run going
RECOVERABLE_ERRORS = (PageStructureError, TimeoutException, requests.RequestException)


@dataclass
class DetailScrapeResult:
    scraped: int = 0
    skipped: int = 0
    invoices_downloaded: int = 0
    failed_order_ids: List[str] = field(default_factory=list)


def extract_pdf_links(html: str, base_url: str) -> List[InvoiceLink]:
    """Named links in ``html`` whose target path ends in .pdf, in page order."""
    soup = BeautifulSoup(html or "", "lxml")
    links = []
    seen_urls = set()
    for anchor in soup.find_all("a", href=True):
        link = InvoiceLink(
            name=" ".join(anchor.get_text(" ", strip=True).split()),
            url=urljoin(base_url + "/", anchor["href"].strip()),
        )
        if link.is_pdf and link.url not in seen_urls:
            seen_urls.add(link.url)
            links.append(link)
    return links


def invoice_date_part(order_date: str) -> str:
    """ISO date for an invoice file name, falling back to the raw text."""
    iso_date = parse_localized_date(order_date)
    if iso_date is None and order_date:
        # labels such as "Bestellt am 5. März 2024" carry the date in the last three tokens
        iso_date = parse_localized_date(" ".join(order_date.split()[-3:]))
    if iso_date:
        return iso_date
    return sanitize_filename_part(order_date) or "undated"


def invoice_file_name(order: Order, invoice: InvoiceLink, source_name: str, index: int = 1,
                      numbered: bool = False) -> str:
    """
    ``<date>_<source>_<orderId>_<invoiceName>_<amount>.pdf``. With ``numbered``
    the invoice name gets a ``-<index>`` suffix, for orders whose invoice
    links share one name.
    """
    name = sanitize_filename_part(invoice.name)
    if not name:
        name = f"invoice-{index}"
    elif numbered:
        name = f"{name}-{index}"
    parts = [
        invoice_date_part(order.date),
        sanitize_filename_part(source_name),
        sanitize_filename_part(order.id),
        name,
        sanitize_filename_part(order.total_amount) or "unknown-amount",
    ]
    return "_".join(parts) + ".pdf"


class OrderDetailScraper(BaseScraper):
    def _text(self, scope, selector, default=""):
        return text_or_default(self.page_query, scope, selector, default, self.config.field_timeout)

    def _attribute(self, scope, selector, attribute):
        return self.page_query.query_attribute(scope, selector, attribute, self.config.field_timeout) or ""

    def get_order_total(self, order_details) -> str:
        # the last charge line is the grand total, however many lines precede it
        charge_lines = self.page_query.query_all(order_details, CHARGE_LINE_SELECTOR)
        if not charge_lines:
            return ""
        return self._text(charge_lines[-1], CHARGE_LINE_CONTENT_SELECTOR)

    def get_order_items(self, order_details, order_id: str) -> List[OrderItem]:
        order_items = []
        for item_grid in self.page_query.query_all(order_details, ITEM_GRID_SELECTOR):
            item_href = self._attribute(item_grid, ITEM_TITLE_LINK_SELECTOR, "href")
            merchant_href = self._attribute(item_grid, MERCHANT_LINK_SELECTOR, "href")
            quantity = extract_int(self._text(item_grid, QUANTITY_SELECTOR, "1"))
            order_item = OrderItem(
                order_id=order_id,
                title=self._text(item_grid, ITEM_TITLE_LINK_SELECTOR),
                asin=regex_group_or_empty(item_href, ASIN_PATTERN),
                merchant=self._text(item_grid, MERCHANT_LINK_SELECTOR),
                merchant_id=regex_group_or_empty(merchant_href, MERCHANT_ID_PATTERN),
                quantity=quantity if quantity is not None else 1,
                unit_price=self._text(item_grid, UNIT_PRICE_SELECTOR),
            )
            order_items.append(order_item)
            logger.info(
                f"   ASIN: {order_item.asin}, Merchant: {order_item.merchant}, Qty: {order_item.quantity}, "
                f"Price: {order_item.unit_price}, Title: {order_item.title[:50]}..."
            )
        return order_items

    def get_order_details(self, order_id: str) -> Order:
        url = self.order_summary_url(order_id)
        logger.info(f"🌐 Navigating to order summary page for order {order_id}: {url}")
        self.page_query.navigate(url, "domcontentloaded", self.config.page_load_timeout)
        self.page_query.wait_for_selector(ORDER_DETAILS_SELECTOR, self.config.list_timeout)

        containers = self.page_query.query_all(None, ORDER_DETAILS_SELECTOR)
        if not containers:
            raise PageStructureError(f"Order details container vanished for order {order_id}")
        details_scope = containers[0]
        return Order(
            id=order_id,
            date=self._text(details_scope, ORDER_DATE_SELECTOR),
            total_amount=self.get_order_total(details_scope),
            shipping_name=self._text(details_scope, SHIPPING_NAME_SELECTOR),
            shipping_address=self._text(details_scope, SHIPPING_ADDRESS_SELECTOR),
            payment_instrument=self._text(details_scope, PAYMENT_INSTRUMENT_SELECTOR),
            items=self.get_order_items(details_scope, order_id),
        )

    def get_invoice_links(self, order_id: str) -> List[InvoiceLink]:
        url = self.order_invoice_url(order_id)
        logger.info(f"🌐 Navigating to invoice page for order {order_id}: {url}")
        self.page_query.navigate(url, "load", self.config.page_load_timeout)
        links = extract_pdf_links(self.page_query.page_source(), self.config.base_url)
        logger.info(f"   Found {len(links)} invoice(s) for order {order_id}")
        return links

    def download_invoices(self, year: int, order: Order) -> int:
        """Save every invoice of ``order`` into the year folder. Returns the number of new files."""
        invoice_dir = self.checkpoint_manager.get_year_invoice_dir(year)
        name_counts = Counter(sanitize_filename_part(link.name) for link in order.invoice_links)
        downloaded = 0
        for index, invoice in enumerate(order.invoice_links, 1):
            numbered = name_counts[sanitize_filename_part(invoice.name)] > 1
            destination = os.path.join(
                invoice_dir, invoice_file_name(order, invoice, self.config.source_name, index, numbered)
            )
            if os.path.exists(destination):
                logger.info(f"   Invoice already present: {destination}")
                continue
            self.page_query.download_file(invoice.url, destination)
            downloaded += 1
        return downloaded

    def scrape_year_details(self, year_orders: YearOrderIds) -> DetailScrapeResult:
        year = year_orders.year
        result = DetailScrapeResult()
        orders = self.checkpoint_manager.read_year_order_details(year)
        known_ids = {order.id for order in orders}
        total = len(year_orders.order_ids)
        logger.info(f"📦 Collecting details for {total} orders of {year} ({len(known_ids)} already stored)")

        for index, order_id in enumerate(year_orders.order_ids, 1):
            if order_id in known_ids:
                result.skipped += 1
                continue

            self.random_sleep()
            logger.info(f"--- ({index}/{total}) Processing order {order_id}")
            try:
                order = self.get_order_details(order_id)
                order.invoice_links = self.get_invoice_links(order_id)
                result.invoices_downloaded += self.download_invoices(year, order)
            except RECOVERABLE_ERRORS as e:
                logger.error(f"❌ FAILED to collect order {order_id}: {e}")
                result.failed_order_ids.append(order_id)
                continue

            if append_unique_order(orders, order):
                self.checkpoint_manager.write_year_order_details(year, orders)
                known_ids.add(order.id)
                result.scraped += 1

        logger.info(
            f"✅ Order details for {year}: {result.scraped} scraped, {result.skipped} already stored, "
            f"{len(result.failed_order_ids)} failed, {result.invoices_downloaded} invoices downloaded"
        )
        return result
