import time
import random
import logging

from amzscraper.order_data import PAGE_SIZE

logger = logging.getLogger(__name__)


class BaseScraper:
    def __init__(self, config, page_query, checkpoint_manager, sleep=time.sleep):
        self.config = config
        self.page_query = page_query
        self.checkpoint_manager = checkpoint_manager
        self._sleep = sleep

    def random_sleep(self):
        """Pause for a random time within the configured delay bounds."""
        lower, upper = self.config.min_delay_ms, self.config.max_delay_ms
        if upper <= 0:
            return
        delay_ms = lower + random.random() * (upper - lower)
        logger.debug(f"Sleeping for {round(delay_ms)} ms to mimic human behavior...")
        self._sleep(delay_ms / 1000)

    def order_year_page_url(self, year, order_page):
        start_index = order_page * PAGE_SIZE
        return f"{self.config.base_url}/gp/your-account/order-history?timeFilter=year-{year}&startIndex={start_index}"

    def order_summary_url(self, order_id):
        return f"{self.config.base_url}/gp/css/summary/print.html?orderID={order_id}"

    def order_invoice_url(self, order_id):
        return f"{self.config.base_url}/your-orders/invoice/popover?orderId={order_id}"
