"""
Marketplace display price.

The zetta price is the seller's listed price less a fixed 6%
marketplace discount.
"""

from typing import Optional, Union

ZETTA_PRICE_FACTOR = 0.94


def derive_zetta_price(listed_price: Optional[Union[int, float]]) -> Optional[float]:
    """
    Derive the displayed price from the seller's price.

    A zero or missing listed price yields None rather than 0, so a
    product without a price never gets a real-looking display price.

    Examples:
        derive_zetta_price(100) -> 94.0
        derive_zetta_price(0) -> None

    Args:
        listed_price: Seller's price

    Returns:
        Price rounded to cents, or None
    """
    if not listed_price:
        return None
    return round(listed_price * ZETTA_PRICE_FACTOR, 2)
