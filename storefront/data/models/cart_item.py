from sqlalchemy import Column, Integer, String, UniqueConstraint

from storefront.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    storage_key = Column(String(64), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    #id produktu trzymane jako tekst, int i str z backendu traktujemy tak samo
    product_id = Column(String(64), nullable=False)
    product_id_is_int = Column(Integer, nullable=False, default=0)

    quantity = Column(Integer, nullable=False)
    #cena jako tekst, zeby Decimal wracal bez zaokraglen
    price = Column(String(32), nullable=True)
    name = Column(String, nullable=True)
    image = Column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("storage_key", "product_id", name="u_cart_product"),
    )
