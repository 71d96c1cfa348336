#!/usr/bin/env python3
"""
Order id collection for one year.

Walks the paginated order history (10 orders per page) and records the
order ids it finds. The id ledger is written after every page, and a run
that finds a complete ledger on disk returns it without opening any page.
"""

import logging
from typing import List

from amzscraper.base_scraper import BaseScraper
from amzscraper.exceptions import PageStructureError
from amzscraper.order_data import YearOrderIds
from amzscraper.text_utils import extract_int

logger = logging.getLogger(__name__)

ORDER_CARD_SELECTOR = ".order-card"
ORDER_ID_SELECTOR = ".yohtmlc-order-id span[dir]"
TOTAL_ORDERS_SELECTOR = "span.num-orders"
ORDER_YEAR_OPTIONS_SELECTOR = "#time-filter > option[value^='year-']"


class OrderIdCollector(BaseScraper):
    def __init__(self, config, page_query, checkpoint_manager, **kwargs):
        super().__init__(config, page_query, checkpoint_manager, **kwargs)
        self.pages_fetched = 0

    def _goto_order_year_page(self, year: int, order_page: int, total_pages=None):
        url = self.order_year_page_url(year, order_page)
        of_pages = f"/{total_pages}" if total_pages else ""
        logger.info(f"🌐 Navigating to orders for year {year}, page {order_page + 1}{of_pages}: {url}")
        self.page_query.navigate(url, "domcontentloaded", self.config.page_load_timeout)
        self.pages_fetched += 1

    def get_order_years(self) -> List[int]:
        years = []
        for option in self.page_query.query_all(None, ORDER_YEAR_OPTIONS_SELECTOR):
            year = extract_int(self.page_query.element_text(option))
            if year is not None:
                years.append(year)
        return years

    def _read_total_orders(self, year: int) -> int:
        self.page_query.wait_for_selector(TOTAL_ORDERS_SELECTOR, self.config.list_timeout)
        total_text = self.page_query.query_text(None, TOTAL_ORDERS_SELECTOR, self.config.field_timeout)
        total_orders = extract_int(total_text)
        if total_orders is None:
            raise PageStructureError(f"Could not read the number of orders for year {year} from '{total_text}'")
        return total_orders

    def collect_order_ids_from_page(self) -> List[str]:
        """Order ids on the current listing page, in page order."""
        self.page_query.wait_for_selector(ORDER_CARD_SELECTOR, self.config.list_timeout)
        order_ids = []
        for order_card in self.page_query.query_all(None, ORDER_CARD_SELECTOR):
            order_id = self.page_query.query_text(order_card, ORDER_ID_SELECTOR, self.config.field_timeout)
            if order_id:
                order_ids.append(order_id.strip())
        return order_ids

    def collect_order_ids_for_year(self, year: int) -> YearOrderIds:
        self.pages_fetched = 0
        stored = self.checkpoint_manager.read_year_order_ids(year)
        if stored is not None and stored.is_complete:
            logger.info(
                f"✅ Order IDs for year {year} are already complete ({stored.total_orders}). "
                f"Loaded from {self.checkpoint_manager.get_year_order_ids_file_path(year)}"
            )
            return stored

        order_ids = list(stored.order_ids) if stored else []
        seen = set(order_ids)
        start_page = stored.estimated_last_page if stored else 0
        logger.info(f"🔗 Collecting order IDs for year {year} starting from page {start_page + 1}...")

        self._goto_order_year_page(year, start_page)
        available_years = self.get_order_years()
        if available_years:
            logger.info(f"Available years: {', '.join(str(y) for y in available_years)}")

        total_orders = self._read_total_orders(year)
        if stored is not None and stored.total_orders != total_orders:
            logger.warning(
                f"⚠️ Server reports {total_orders} orders for {year}, ledger has {stored.total_orders}. Keeping the ledger total."
            )
            total_orders = stored.total_orders

        year_orders = YearOrderIds(year, total_orders, list(order_ids))
        if total_orders == 0:
            logger.info(f"No orders in year {year}")
            self.checkpoint_manager.write_year_order_ids(year_orders)
            return year_orders

        total_pages = year_orders.total_pages
        logger.info(f"📊 Total orders in year {year}: {total_orders} across {total_pages} pages")

        for order_page in range(start_page, total_pages):
            if order_page != start_page:
                self.random_sleep()
                self._goto_order_year_page(year, order_page, total_pages)

            page_order_ids = self.collect_order_ids_from_page()
            if not page_order_ids:
                raise PageStructureError(
                    f"No order IDs found on page {order_page + 1}/{total_pages} for year {year}"
                )
            new_ids = []
            for order_id in page_order_ids:
                if order_id not in seen:
                    seen.add(order_id)
                    new_ids.append(order_id)
            order_ids.extend(new_ids)
            logger.info(
                f"Found {len(page_order_ids)} order IDs ({len(new_ids)} new) in page {order_page + 1}/{total_pages}"
            )

            # save progress after each page
            year_orders = YearOrderIds(year, total_orders, list(order_ids))
            self.checkpoint_manager.write_year_order_ids(year_orders)
            if year_orders.is_complete:
                break

        if not year_orders.is_complete:
            logger.warning(
                f"⚠️ Recorded {len(order_ids)} of {total_orders} order IDs for year {year}; the next run resumes from page {year_orders.estimated_last_page + 1}"
            )
        else:
            logger.info(f"✅ Recorded {len(order_ids)} order IDs for year {year}")
        return year_orders
