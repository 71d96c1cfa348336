import os
import json
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from amzscraper.order_data import Order, YearOrderIds

logger = logging.getLogger(__name__)


def append_unique_order(existing_orders: List[Order], order: Order) -> bool:
    """
    Append ``order`` unless an order with the same id is already present.
    Returns True when the list was changed.
    """
    if any(existing.id == order.id for existing in existing_orders):
        logger.info(f"Order {order.id} already exists in details, skipping append.")
        return False
    existing_orders.append(order)
    return True


class AbstractCheckpointManager(ABC):
    @abstractmethod
    def read_year_order_ids(self, year: int) -> Optional[YearOrderIds]:
        pass
    @abstractmethod
    def write_year_order_ids(self, year_orders: YearOrderIds) -> None:
        pass
    @abstractmethod
    def read_year_order_details(self, year: int) -> List[Order]:
        pass
    @abstractmethod
    def write_year_order_details(self, year: int, orders: List[Order]) -> None:
        pass


class CheckpointManager(AbstractCheckpointManager):
    """
    Keeps the per-year progress files in the download directory:

    - ``<year>-order-ids.json``: the order id ledger, rewritten after every listing page
    - ``<year>-order-details.json``: the order detail ledger, rewritten after every order

    Every write goes to a temporary file first and is moved into place, so a
    killed process leaves either the previous or the new ledger on disk.
    File system errors are not caught here.
    """
    def __init__(self, download_dir: str):
        self.download_dir = download_dir

    def get_year_order_ids_file_path(self, year: int) -> str:
        return os.path.join(self.download_dir, f"{year}-order-ids.json")

    def get_year_order_details_file_path(self, year: int) -> str:
        return os.path.join(self.download_dir, f"{year}-order-details.json")

    def get_year_invoice_dir(self, year: int) -> str:
        return os.path.join(self.download_dir, str(year))

    def _write_json(self, path: str, data) -> None:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_file = path + '.tmp'
        with open(tmp_file, 'w', encoding='utf-8') as out:
            json.dump(data, out, indent=2, ensure_ascii=False)
        os.replace(tmp_file, path)

    def _read_json(self, path: str):
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def read_year_order_ids(self, year: int) -> Optional[YearOrderIds]:
        path = self.get_year_order_ids_file_path(year)
        if not os.path.exists(path):
            return None
        return YearOrderIds.from_dict(self._read_json(path))

    def write_year_order_ids(self, year_orders: YearOrderIds) -> None:
        path = self.get_year_order_ids_file_path(year_orders.year)
        self._write_json(path, year_orders.to_dict())
        logger.info(f"💾 Wrote {len(year_orders.order_ids)}/{year_orders.total_orders} order IDs for year {year_orders.year} to {path}")

    def read_year_order_details(self, year: int) -> List[Order]:
        path = self.get_year_order_details_file_path(year)
        if not os.path.exists(path):
            return []
        data = self._read_json(path) or []
        return [Order.from_dict(obj) for obj in data]

    def write_year_order_details(self, year: int, orders: List[Order]) -> None:
        path = self.get_year_order_details_file_path(year)
        self._write_json(path, [order.to_dict() for order in orders])
        logger.info(f"💾 Wrote {len(orders)} order details for year {year} to {path}")
