# marketplace/services/pricing.py
"""
Pricing policies for order creation.

The order service never computes money itself; it asks a policy for
each line's unit price and for the order totals. Swapping the policy
moves pricing from "trust the client" to "recompute on the server"
without touching the order flow.
"""

from dataclasses import dataclass
from typing import Protocol

from marketplace.models.product import Product
from marketplace.schemas.order import OrderCreate, OrderItemCreate

# Catalog pricing constants (mirrors the storefront checkout)
TAX_RATE = 0.10
FLAT_SHIPPING = 100.0


@dataclass(frozen=True)
class PriceQuote:
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float


@dataclass(frozen=True)
class PricedLine:
    line: OrderItemCreate
    product: Product
    unit_price: float


class PricingPolicy(Protocol):
    def unit_price(self, line: OrderItemCreate, product: Product) -> float: ...

    def quote(self, payload: OrderCreate, lines: list[PricedLine]) -> PriceQuote: ...


class ClientSubmittedPricing:
    """
    Accept prices exactly as the client submitted them.

    A line without a price falls back to the catalog price so the
    snapshot is never empty.
    """

    def unit_price(self, line: OrderItemCreate, product: Product) -> float:
        return line.price if line.price is not None else product.price

    def quote(self, payload: OrderCreate, lines: list[PricedLine]) -> PriceQuote:
        return PriceQuote(
            items_price=payload.items_price,
            tax_price=payload.tax_price,
            shipping_price=payload.shipping_price,
            total_price=payload.total_price,
        )


class CatalogPricing:
    """
    Recompute everything from catalog prices.

      items    = sum(product.price * quantity)
      tax      = items * TAX_RATE
      shipping = FLAT_SHIPPING when items > 0, else 0
      total    = items + tax + shipping

    Amounts are rounded to 2 decimals.
    """

    def __init__(self, tax_rate: float = TAX_RATE, flat_shipping: float = FLAT_SHIPPING):
        self.tax_rate = tax_rate
        self.flat_shipping = flat_shipping

    def unit_price(self, line: OrderItemCreate, product: Product) -> float:
        return product.price

    def quote(self, payload: OrderCreate, lines: list[PricedLine]) -> PriceQuote:
        items_price = round(sum(pl.unit_price * pl.line.quantity for pl in lines), 2)
        tax_price = round(items_price * self.tax_rate, 2)
        shipping_price = self.flat_shipping if items_price > 0 else 0.0
        return PriceQuote(
            items_price=items_price,
            tax_price=tax_price,
            shipping_price=shipping_price,
            total_price=round(items_price + tax_price + shipping_price, 2),
        )


def get_pricing_policy(name: str) -> PricingPolicy:
    if name == "catalog":
        return CatalogPricing()
    if name == "client":
        return ClientSubmittedPricing()
    raise ValueError(f"Unknown pricing policy: {name}")
