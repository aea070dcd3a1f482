"""Entry points exposed to clients and to the item write trigger."""

from seconde.api.callables import DiscoveryAPI, product_row, to_callable_error
from seconde.api.triggers import ItemWriteHandler

__all__ = ["DiscoveryAPI", "ItemWriteHandler", "product_row", "to_callable_error"]
