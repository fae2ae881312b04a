# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, AliasChoices, field_validator, field_serializer
from typing import List, Tuple, Union, Any
from decimal import Decimal
from datetime import datetime

ProductId = Union[int, str]


def product_key(product_id: Any) -> str:
    """Id produktu porownywane jako string (1 == "1")."""
    return str(product_id)


class Product(BaseModel):
    """Rekord produktu z backendu, tylko do odczytu."""

    # nieznane pola zostaja, zeby PUT calego rekordu ich nie zgubil
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    id: ProductId
    name: str = ""
    price: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        validation_alias=AliasChoices("price", "precio"),
    )
    stock: int = Field(default=0, ge=0)
    image: str | None = None
    description: str | None = None

    @field_validator("price", mode="before")
    @classmethod
    def price_default(cls, v):
        return Decimal("0") if v is None or v == "" else v

    @field_validator("stock", mode="before")
    @classmethod
    def stock_floor(cls, v):
        if v is None or v == "":
            return 0
        try:
            return max(int(v), 0)
        except (TypeError, ValueError):
            return v

    @field_serializer("price", when_used="json")
    def price_as_number(self, v: Decimal):
        #backend trzyma cene jako liczbe
        return float(v)

    def to_record(self) -> dict:
        return self.model_dump(mode="json")


class LineItem(BaseModel):
    """Pozycja koszyka: id produktu + ilosc. Cena/nazwa/obrazek to tylko podpowiedzi."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    product_id: ProductId = Field(alias="id")
    quantity: int = Field(ge=1)
    cached_unit_price: Decimal | None = Field(default=None, alias="price")
    cached_name: str | None = Field(default=None, alias="name")
    cached_image: str | None = Field(default=None, alias="image")

    @property
    def key(self) -> str:
        return product_key(self.product_id)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Coupon(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    discount_percent: int = Field(..., ge=1, le=99)


class CouponResult(BaseModel):
    """Wynik parsowania kodu wpisanego przez uzytkownika."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    code: str
    coupon: Coupon | None = None
    parsed_percent: int | None = None
    reason: str | None = None
    message: str = ""

    @property
    def discount_percent(self) -> int:
        return self.coupon.discount_percent if self.coupon else 0


class ResolvedLine(BaseModel):
    """LineItem polaczony z produktem (cena z serwera ma pierwszenstwo)."""

    product_id: ProductId
    quantity: int
    name: str | None = None
    image: str | None = None
    unit_price: Decimal = Decimal("0")
    available: int | None = None
    missing: bool = False
    subtotal: Decimal = Decimal("0")


class Totals(BaseModel):
    subtotal: Decimal
    discount_percent: int = 0
    discounted_total: Decimal


class PurchaseLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: ProductId
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class PurchaseSummary(BaseModel):
    """Podsumowanie zakupu, tylko na potrzeby potwierdzenia w UI."""

    model_config = ConfigDict(frozen=True)

    items: Tuple[PurchaseLine, ...]
    total: Decimal
    discounted_total: Decimal
    discount_percent: int = 0
    coupon_code: str | None = None
    purchased_at: datetime


class CheckoutResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    success: bool
    summary: PurchaseSummary | None = None
    reason: str | None = None
    error: Exception | None = Field(default=None, exclude=True)


# --- schematy HTTP ---

class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: ProductId
    quantity: int = Field(1, gt=0, description="Ilosc produktu (musi byc > 0)")


class QuantityIn(BaseModel):
    """Dowolna wartosc; nienumeryczna zamieniana na 1."""

    quantity: Any = None


class CouponIn(BaseModel):
    code: str = Field(..., max_length=32)


class CartOut(BaseModel):
    lines: List[ResolvedLine]
    totals: Totals
    coupon_code: str | None = None
    display_subtotal: str
    display_total: str


class CouponOut(BaseModel):
    valid: bool
    code: str
    discount_percent: int
    reason: str | None = None
    message: str
    totals: Totals


class CatalogOut(BaseModel):
    products: List[Product]
    degraded: bool = False
    fetched_at: datetime | None = None


class CheckoutOut(BaseModel):
    success: bool
    summary: PurchaseSummary | None = None
    reason: str | None = None
