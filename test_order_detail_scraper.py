import os

import pytest

from amzscraper.checkpoint_manager import CheckpointManager
from amzscraper.exceptions import NavigationError, PageStructureError
from amzscraper.order_data import InvoiceLink, Order, YearOrderIds
from amzscraper.order_detail_scraper import (
    CHARGE_LINE_CONTENT_SELECTOR,
    CHARGE_LINE_SELECTOR,
    ITEM_GRID_SELECTOR,
    ITEM_TITLE_LINK_SELECTOR,
    MERCHANT_LINK_SELECTOR,
    ORDER_DATE_SELECTOR,
    ORDER_DETAILS_SELECTOR,
    PAYMENT_INSTRUMENT_SELECTOR,
    QUANTITY_SELECTOR,
    SHIPPING_ADDRESS_SELECTOR,
    SHIPPING_NAME_SELECTOR,
    UNIT_PRICE_SELECTOR,
    OrderDetailScraper,
    extract_pdf_links,
    invoice_date_part,
    invoice_file_name,
)
from conftest import BASE_URL, FakeElement, FakePageQuery

INVOICE_HTML = """
<html><body>
  <ul class="invoice-list">
    <li><a href="/documents/download/abc/invoice.pdf">Rechnung 1</a></li>
    <li><a href="https://shop.test/documents/download/def/credit.pdf?x=1">Gutschrift</a></li>
    <li><a href="/gp/help/customer/display.html">Hilfe</a></li>
    <li><a href="/documents/download/abc/invoice.pdf">Rechnung 1</a></li>
  </ul>
</body></html>
"""


def item_grid(title="USB-C Kabel", asin="B0ABC12345", merchant="Kabelhaus GmbH", seller="A1B2C3D4",
              quantity=None, price="€6,17"):
    texts = {ITEM_TITLE_LINK_SELECTOR: title, UNIT_PRICE_SELECTOR: price}
    attributes = {(ITEM_TITLE_LINK_SELECTOR, "href"): f"{BASE_URL}/gp/product/dp/{asin}/ref=od"}
    if merchant is not None:
        texts[MERCHANT_LINK_SELECTOR] = merchant
        attributes[(MERCHANT_LINK_SELECTOR, "href")] = f"{BASE_URL}/gp/help/seller/at-a-glance.html?seller={seller}"
    if quantity is not None:
        texts[QUANTITY_SELECTOR] = quantity
    return FakeElement(texts=texts, attributes=attributes)


def charge_line(value):
    return FakeElement(texts={CHARGE_LINE_CONTENT_SELECTOR: value})


def detail_page(items=None, charges=("€10,00", "€2,34", "€12,34")):
    details = FakeElement(
        texts={
            ORDER_DATE_SELECTOR: "5. März 2024",
            PAYMENT_INSTRUMENT_SELECTOR: "Visa ending in 1234",
            SHIPPING_NAME_SELECTOR: "Erika Mustermann",
            SHIPPING_ADDRESS_SELECTOR: "Heidestraße 17, 51147 Köln",
        },
        children={
            CHARGE_LINE_SELECTOR: [charge_line(c) for c in charges],
            ITEM_GRID_SELECTOR: items if items is not None else [item_grid()],
        },
    )
    return FakeElement(children={ORDER_DETAILS_SELECTOR: [details]})


@pytest.fixture
def page_query():
    return FakePageQuery()


@pytest.fixture
def scraper(config, page_query, sleeps):
    return OrderDetailScraper(config, page_query, CheckpointManager(config.download_dir), sleep=sleeps.append)


def add_order(scraper, page_query, order_id, page=None, invoice_html=INVOICE_HTML):
    page_query.pages[scraper.order_summary_url(order_id)] = page or detail_page()
    page_query.sources[scraper.order_invoice_url(order_id)] = invoice_html


def test_get_order_details_reads_fields_and_items(scraper, page_query):
    add_order(scraper, page_query, "302-1", detail_page(items=[
        item_grid(quantity="2"),
        item_grid(title="Hülle", asin="B0XYZ98765", merchant="Amazon", seller="A3JWKAKR8XB7XF", price="€3,99"),
    ]))

    order = scraper.get_order_details("302-1")

    assert order.id == "302-1"
    assert order.date == "5. März 2024"
    assert order.total_amount == "€12,34"
    assert order.shipping_name == "Erika Mustermann"
    assert order.shipping_address == "Heidestraße 17, 51147 Köln"
    assert order.payment_instrument == "Visa ending in 1234"
    first, second = order.items
    assert (first.order_id, first.title, first.asin, first.merchant, first.merchant_id, first.quantity, first.unit_price) == (
        "302-1", "USB-C Kabel", "B0ABC12345", "Kabelhaus GmbH", "A1B2C3D4", 2, "€6,17"
    )
    assert second.asin == "B0XYZ98765"
    assert second.merchant_id == "A3JWKAKR8XB7XF"
    assert second.quantity == 1


def test_total_is_the_last_charge_line(scraper, page_query):
    charges = ("€10,00", "€0,00", "€2,34", "-€1,00", "€0,50", "€1,99", "€13,83")
    add_order(scraper, page_query, "302-1", detail_page(charges=charges))

    assert scraper.get_order_details("302-1").total_amount == "€13,83"


def test_missing_merchant_still_gives_a_record(scraper, page_query, config):
    add_order(scraper, page_query, "302-1", detail_page(items=[item_grid(merchant=None)]))

    result = scraper.scrape_year_details(YearOrderIds(2024, 1, ["302-1"]))

    assert result.scraped == 1
    stored = CheckpointManager(config.download_dir).read_year_order_details(2024)
    assert len(stored) == 1
    item = stored[0].items[0]
    assert stored[0].id == "302-1"
    assert item.merchant == ""
    assert item.merchant_id == ""
    assert item.title == "USB-C Kabel"
    assert item.asin == "B0ABC12345"


def test_order_without_items_is_valid(scraper, page_query):
    add_order(scraper, page_query, "302-1", detail_page(items=[]))

    order = scraper.get_order_details("302-1")

    assert order.items == []
    assert order.total_amount == "€12,34"


def test_extract_pdf_links():
    links = extract_pdf_links(INVOICE_HTML, BASE_URL)
    assert links == [
        InvoiceLink(name="Rechnung 1", url="https://shop.test/documents/download/abc/invoice.pdf"),
        InvoiceLink(name="Gutschrift", url="https://shop.test/documents/download/def/credit.pdf?x=1"),
    ]
    assert extract_pdf_links("", BASE_URL) == []


def test_invoice_file_name():
    order = Order(id="302-1234567-7654321", date="5. März 2024", total_amount="€12,34")
    invoice = InvoiceLink(name="Rechnung 1", url="https://shop.test/x.pdf")
    assert invoice_file_name(order, invoice, "amazon") == "2024-03-05_amazon_302-1234567-7654321_Rechnung-1_12,34.pdf"
    unnamed = InvoiceLink(name="", url="https://shop.test/y.pdf")
    assert invoice_file_name(order, unnamed, "amazon", 2).endswith("_invoice-2_12,34.pdf")
    assert invoice_file_name(order, invoice, "amazon", 3, numbered=True).endswith("_Rechnung-1-3_12,34.pdf")


@pytest.mark.parametrize("raw, expected", [
    ("5. März 2024", "2024-03-05"),
    ("Bestellt am 5. März 2024", "2024-03-05"),
    ("March 5, 2024", "March-5,-2024"),
    ("", "undated"),
])
def test_invoice_date_part_falls_back_to_raw_text(raw, expected):
    assert invoice_date_part(raw) == expected


def test_scrape_year_details_downloads_invoices_and_persists(scraper, page_query, config, sleeps):
    for order_id in ("302-1", "302-2"):
        add_order(scraper, page_query, order_id)

    result = scraper.scrape_year_details(YearOrderIds(2024, 2, ["302-1", "302-2"]))

    assert result.scraped == 2
    assert result.invoices_downloaded == 4
    assert len(sleeps) == 2
    stored = CheckpointManager(config.download_dir).read_year_order_details(2024)
    assert [o.id for o in stored] == ["302-1", "302-2"]
    assert [link.name for link in stored[0].invoice_links] == ["Rechnung 1", "Gutschrift"]
    invoice_dir = os.path.join(config.download_dir, "2024")
    assert sorted(os.listdir(invoice_dir)) == [
        "2024-03-05_amazon_302-1_Gutschrift_12,34.pdf",
        "2024-03-05_amazon_302-1_Rechnung-1_12,34.pdf",
        "2024-03-05_amazon_302-2_Gutschrift_12,34.pdf",
        "2024-03-05_amazon_302-2_Rechnung-1_12,34.pdf",
    ]


def test_already_stored_orders_are_skipped(scraper, page_query, config):
    manager = CheckpointManager(config.download_dir)
    manager.write_year_order_details(2024, [Order(id="302-1")])
    add_order(scraper, page_query, "302-2")

    result = scraper.scrape_year_details(YearOrderIds(2024, 2, ["302-1", "302-2"]))

    assert result.skipped == 1
    assert result.scraped == 1
    assert scraper.order_summary_url("302-1") not in page_query.navigations
    assert [o.id for o in manager.read_year_order_details(2024)] == ["302-1", "302-2"]


def test_rerun_does_not_duplicate_records(scraper, page_query, config):
    add_order(scraper, page_query, "302-1")
    ledger = YearOrderIds(2024, 1, ["302-1"])
    scraper.scrape_year_details(ledger)

    result = scraper.scrape_year_details(ledger)

    assert result.scraped == 0
    assert result.skipped == 1
    assert len(CheckpointManager(config.download_dir).read_year_order_details(2024)) == 1


def test_existing_invoice_file_is_not_downloaded_again(scraper, page_query, config):
    add_order(scraper, page_query, "302-1")
    scraper.scrape_year_details(YearOrderIds(2024, 1, ["302-1"]))
    page_query.downloads.clear()

    order = scraper.get_order_details("302-1")
    order.invoice_links = scraper.get_invoice_links("302-1")

    assert scraper.download_invoices(2024, order) == 0
    assert page_query.downloads == []


def test_recoverable_failures_do_not_stop_the_loop(scraper, page_query, config):
    add_order(scraper, page_query, "302-1")
    # no #orderDetails container for this order
    page_query.pages[scraper.order_summary_url("302-2")] = FakeElement()
    add_order(scraper, page_query, "302-3")
    page_query.failing_downloads.add("https://shop.test/documents/download/def/credit.pdf?x=1")
    add_order(scraper, page_query, "302-4", invoice_html="<html><body>Keine Rechnung</body></html>")

    result = scraper.scrape_year_details(YearOrderIds(2024, 4, ["302-1", "302-2", "302-3", "302-4"]))

    assert result.failed_order_ids == ["302-1", "302-2", "302-3"]
    assert result.scraped == 1
    stored = CheckpointManager(config.download_dir).read_year_order_details(2024)
    assert [o.id for o in stored] == ["302-4"]
    assert stored[0].invoice_links == []


def test_navigation_failure_stops_the_run(scraper, page_query, config):
    add_order(scraper, page_query, "302-1")
    add_order(scraper, page_query, "302-2")
    page_query.broken_urls.add(scraper.order_summary_url("302-2"))

    with pytest.raises(NavigationError):
        scraper.scrape_year_details(YearOrderIds(2024, 2, ["302-1", "302-2"]))

    stored = CheckpointManager(config.download_dir).read_year_order_details(2024)
    assert [o.id for o in stored] == ["302-1"]


def test_same_named_invoices_are_all_saved(scraper, page_query, config):
    invoice_html = """
    <html><body>
      <a href="/documents/download/aaa/invoice.pdf">Rechnung</a>
      <a href="/documents/download/bbb/invoice.pdf">Rechnung</a>
    </body></html>
    """
    add_order(scraper, page_query, "302-1", invoice_html=invoice_html)

    result = scraper.scrape_year_details(YearOrderIds(2024, 1, ["302-1"]))

    assert result.invoices_downloaded == 2
    assert [url for url, _ in page_query.downloads] == [
        "https://shop.test/documents/download/aaa/invoice.pdf",
        "https://shop.test/documents/download/bbb/invoice.pdf",
    ]
    assert sorted(os.listdir(os.path.join(config.download_dir, "2024"))) == [
        "2024-03-05_amazon_302-1_Rechnung-1_12,34.pdf",
        "2024-03-05_amazon_302-1_Rechnung-2_12,34.pdf",
    ]


class VanishingDetailsPageQuery(FakePageQuery):
    def query_all(self, scope, selector):
        if selector == ORDER_DETAILS_SELECTOR:
            return []
        return super().query_all(scope, selector)


def test_vanished_details_container_is_a_page_structure_error(config, sleeps):
    page_query = VanishingDetailsPageQuery()
    scraper = OrderDetailScraper(config, page_query, CheckpointManager(config.download_dir), sleep=sleeps.append)
    add_order(scraper, page_query, "302-1")

    with pytest.raises(PageStructureError):
        scraper.get_order_details("302-1")

    result = scraper.scrape_year_details(YearOrderIds(2024, 1, ["302-1"]))
    assert result.failed_order_ids == ["302-1"]
