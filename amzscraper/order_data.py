#!/usr/bin/env python3
"""
Order Data Models for the Amazon order scraper

Dataclasses for the two ledgers kept per year (order ids and order
details). Attribute names are snake_case; the JSON written to disk uses
the camelCase keys of the storefront export format.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

PAGE_SIZE = 10
PDF_EXTENSION = ".pdf"


@dataclass
class YearOrderIds:
    """Order ids collected for one year, in listing order."""

    year: int
    total_orders: int
    order_ids: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.total_orders == len(self.order_ids)

    @property
    def estimated_last_page(self) -> int:
        # 25 stored ids cover pages 0 (0-9), 1 (10-19) and part of 2 (20-29),
        # so page 2 is fetched again in case it was only partly recorded.
        return len(self.order_ids) // PAGE_SIZE

    @property
    def total_pages(self) -> int:
        return -(-self.total_orders // PAGE_SIZE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "totalOrders": self.total_orders,
            "orderIds": list(self.order_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "YearOrderIds":
        return cls(
            year=int(data["year"]),
            total_orders=int(data["totalOrders"]),
            order_ids=list(data.get("orderIds") or []),
        )


@dataclass
class InvoiceLink:
    """A named link; invoice documents are the ones pointing at a PDF."""

    name: str
    url: str

    @property
    def is_pdf(self) -> bool:
        path = self.url.split("?", 1)[0].split("#", 1)[0]
        return path.lower().endswith(PDF_EXTENSION)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "url": self.url}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoiceLink":
        return cls(name=data.get("name", ""), url=data.get("url", ""))


@dataclass
class OrderItem:
    order_id: str
    title: str = ""
    asin: str = ""
    merchant: str = ""
    merchant_id: str = ""
    quantity: int = 1
    unit_price: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "title": self.title,
            "asin": self.asin,
            "merchant": self.merchant,
            "merchantId": self.merchant_id,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderItem":
        return cls(
            order_id=data.get("orderId", ""),
            title=data.get("title", ""),
            asin=data.get("asin", ""),
            merchant=data.get("merchant", ""),
            merchant_id=data.get("merchantId", ""),
            quantity=int(data.get("quantity") or 1),
            unit_price=data.get("unitPrice", ""),
        )


@dataclass
class Order:
    """One order with its items and invoice links."""

    id: str
    date: str = ""
    total_amount: str = ""
    shipping_name: str = ""
    shipping_address: str = ""
    payment_instrument: str = ""
    items: List[OrderItem] = field(default_factory=list)
    invoice_links: List[InvoiceLink] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "totalAmount": self.total_amount,
            "shippingName": self.shipping_name,
            "shippingAddress": self.shipping_address,
            "paymentInstrument": self.payment_instrument,
            "items": [item.to_dict() for item in self.items],
            "invoiceLinks": [link.to_dict() for link in self.invoice_links],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        return cls(
            id=str(data["id"]),
            date=data.get("date", ""),
            total_amount=data.get("totalAmount", ""),
            shipping_name=data.get("shippingName", ""),
            shipping_address=data.get("shippingAddress", ""),
            payment_instrument=data.get("paymentInstrument", ""),
            items=[OrderItem.from_dict(item) for item in data.get("items") or []],
            invoice_links=[InvoiceLink.from_dict(link) for link in data.get("invoiceLinks") or []],
        )
