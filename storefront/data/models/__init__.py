#import modeli zeby SQLAlchemy zarejestrowal je w base metadata

from storefront.data.models.cart_item import CartItemModel

__all__ = ["CartItemModel"]
