"""
Runs the harvest stages for one year: order ids first, then order details
and invoices.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from amzscraper.checkpoint_manager import CheckpointManager
from amzscraper.order_detail_scraper import OrderDetailScraper
from amzscraper.order_id_collector import OrderIdCollector

logger = logging.getLogger(__name__)


@dataclass
class PipelineSummary:
    year: int
    total_orders: int = 0
    order_ids_collected: int = 0
    order_ids_complete: bool = False
    order_ids_already_complete: bool = False
    listing_pages_fetched: int = 0
    orders_scraped: int = 0
    orders_skipped: int = 0
    invoices_downloaded: int = 0
    failed_order_ids: List[str] = field(default_factory=list)

    def log(self):
        logger.info(f"📊 Summary for {self.year}:")
        already = " (already complete)" if self.order_ids_already_complete else ""
        logger.info(f"   Order IDs: {self.order_ids_collected}/{self.total_orders}{already}, {self.listing_pages_fetched} listing pages fetched")
        logger.info(f"   Orders scraped: {self.orders_scraped}")
        logger.info(f"   Orders skipped (already stored): {self.orders_skipped}")
        logger.info(f"   Invoices downloaded: {self.invoices_downloaded}")
        if self.failed_order_ids:
            logger.warning(f"   Orders failed ({len(self.failed_order_ids)}): {', '.join(self.failed_order_ids)}")


class HarvestPipeline:
    def __init__(self, config, page_query, checkpoint_manager=None, **scraper_kwargs):
        self.config = config
        self.checkpoint_manager = checkpoint_manager or CheckpointManager(config.download_dir)
        self.order_id_collector = OrderIdCollector(config, page_query, self.checkpoint_manager, **scraper_kwargs)
        self.order_detail_scraper = OrderDetailScraper(config, page_query, self.checkpoint_manager, **scraper_kwargs)

    def run_year(self, year=None, ids_only=False) -> PipelineSummary:
        year = year or self.config.invoice_year
        summary = PipelineSummary(year=year)

        logger.info(f"🔗 PHASE 1: Collecting order IDs for {year}")
        stored = self.checkpoint_manager.read_year_order_ids(year)
        summary.order_ids_already_complete = stored is not None and stored.is_complete
        year_orders = self.order_id_collector.collect_order_ids_for_year(year)
        summary.total_orders = year_orders.total_orders
        summary.order_ids_collected = len(year_orders.order_ids)
        summary.order_ids_complete = year_orders.is_complete
        summary.listing_pages_fetched = self.order_id_collector.pages_fetched

        if not ids_only:
            logger.info(f"📦 PHASE 2: Collecting order details and invoices for {year}")
            result = self.order_detail_scraper.scrape_year_details(year_orders)
            summary.orders_scraped = result.scraped
            summary.orders_skipped = result.skipped
            summary.invoices_downloaded = result.invoices_downloaded
            summary.failed_order_ids = list(result.failed_order_ids)

        summary.log()
        return summary
