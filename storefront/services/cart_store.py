# storefront/services/cart_store.py
import threading
from decimal import Decimal
from typing import Iterable, List, Mapping, Tuple

from storefront.domain.errors import CartStorageError, InvalidQuantityError
from storefront.domain.schemas import LineItem, Product, ProductId, product_key
from storefront.repos.cart_storage import CartStorage, InMemoryCartStorage
from storefront.utils.validators import coerce_quantity
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartStore:
    """
    Jedyne zrodlo prawdy o tym, co klient chce kupic.
    - pozycje w kolejnosci dodania, max jedna na produkt, quantity >= 1
    - po kazdej zmianie pelny snapshot idzie do storage
    - blad zapisu jest logowany i polykany, koszyk w pamieci dalej obowiazuje
    """

    def __init__(self, storage: CartStorage | None = None, catalog=None):
        self.storage = storage or InMemoryCartStorage()
        #opcjonalny snapshot katalogu do przycinania ilosci do znanego stanu
        self.catalog = catalog
        self._lock = threading.RLock()
        self._items: List[LineItem] = self._restore()

    def _restore(self) -> List[LineItem]:
        try:
            items = self.storage.load()
        except CartStorageError as e:
            logger.warning(f"Nie udalo sie odtworzyc koszyka, start z pustym: {e}")
            return []
        logger.info(f"Restored cart with {len(items)} items")
        return list(items)

    def _persist(self) -> None:
        try:
            self.storage.save(self._items)
        except CartStorageError as e:
            logger.warning(f"Cart not persisted, keeping in-memory state: {e}")

    def _index(self, product_id: ProductId) -> int:
        key = product_key(product_id)
        for i, item in enumerate(self._items):
            if item.key == key:
                return i
        return -1

    def _cap_to_stock(self, product_id: ProductId, quantity: int) -> int:
        if self.catalog is None:
            return quantity
        product = self.catalog.resolve(product_id)
        if product is None:
            return quantity
        return max(1, min(quantity, product.stock))

    #commands
    def add_item(self, product_ref, qty: int = 1) -> LineItem:
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise InvalidQuantityError(_ref_id(product_ref), qty)

        product_id, hints = _split_ref(product_ref)

        with self._lock:
            idx = self._index(product_id)

            if idx >= 0:
                old = self._items[idx]
                quantity = self._cap_to_stock(product_id, old.quantity + qty)
                logger.info(
                    f"Produkt {product_id} juz jest w koszyku, zwiekszam ilosc "
                    f"z {old.quantity} do {quantity}"
                )
                item = old.model_copy(update={"quantity": quantity, **hints})
                self._items[idx] = item
            else:
                quantity = self._cap_to_stock(product_id, qty)
                logger.info(f"Dodaje nowy produkt {product_id} do koszyka (ilosc {quantity})")
                item = LineItem(product_id=product_id, quantity=quantity, **hints)
                self._items.append(item)

            self._persist()
            return item

    def remove_item(self, product_id: ProductId) -> bool:
        with self._lock:
            idx = self._index(product_id)
            if idx < 0:
                return False
            del self._items[idx]
            logger.info(f"Produkt {product_id} usuniety z koszyka")
            self._persist()
            return True

    def update_quantity(self, product_id: ProductId, qty) -> LineItem | None:
        quantity = coerce_quantity(qty)

        with self._lock:
            idx = self._index(product_id)
            if idx < 0:
                return None
            item = self._items[idx].model_copy(update={"quantity": quantity})
            self._items[idx] = item
            self._persist()
            return item

    def clear(self) -> None:
        with self._lock:
            self._items = []
            logger.info("Koszyk wyczyszczony")
            self._persist()

    def remove_purchased(self, purchased: Iterable[LineItem]) -> None:
        """
        Zdejmuje z koszyka to, co zostalo kupione.
        Pozycje dodane albo zwiekszone w trakcie checkoutu zostaja (z reszta ilosci).
        """
        bought = {item.key: item.quantity for item in purchased}

        with self._lock:
            remaining = []
            for item in self._items:
                qty = bought.get(item.key)
                if qty is None:
                    remaining.append(item)
                elif item.quantity > qty:
                    remaining.append(item.model_copy(update={"quantity": item.quantity - qty}))
            self._items = remaining
            logger.info(f"Kupione pozycje zdjete z koszyka, zostalo {len(remaining)}")
            self._persist()

    def refresh_hints(self, catalog) -> int:
        """Odswieza nazwe/cene/obrazek z katalogu. Tylko do wyswietlania."""
        changed = 0
        with self._lock:
            for i, item in enumerate(self._items):
                product = catalog.resolve(item.product_id)
                if product is None:
                    continue
                hints = _hints(product)
                if any(getattr(item, k) != v for k, v in hints.items()):
                    self._items[i] = item.model_copy(update=hints)
                    changed += 1
            if changed:
                self._persist()
        return changed

    #query
    def get_all(self) -> Tuple[LineItem, ...]:
        with self._lock:
            return tuple(self._items)

    def get(self, product_id: ProductId) -> LineItem | None:
        with self._lock:
            idx = self._index(product_id)
            return self._items[idx] if idx >= 0 else None

    @property
    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self.get_all())


def _hints(product: Product) -> dict:
    return {
        "cached_unit_price": product.price,
        "cached_name": product.name or None,
        "cached_image": product.image,
    }


def _ref_id(product_ref):
    if isinstance(product_ref, Product):
        return product_ref.id
    if isinstance(product_ref, Mapping):
        return product_ref.get("id")
    return product_ref


def _split_ref(product_ref) -> tuple[ProductId, dict]:
    """product_ref: Product, dict z 'id' albo samo id."""
    if isinstance(product_ref, Product):
        return product_ref.id, _hints(product_ref)

    if isinstance(product_ref, Mapping):
        product_id = product_ref.get("id")
        if product_id in (None, ""):
            raise ValueError("Product reference has no id")
        hints = {}
        price = product_ref.get("price", product_ref.get("precio"))
        if price is not None:
            try:
                hints["cached_unit_price"] = Decimal(str(price))
            except ArithmeticError:
                logger.warning(f"Ignoring bad price hint {price!r} for product {product_id}")
        if product_ref.get("name"):
            hints["cached_name"] = product_ref["name"]
        if product_ref.get("image"):
            hints["cached_image"] = product_ref["image"]
        return product_id, hints

    if product_ref in (None, "") or isinstance(product_ref, bool):
        raise ValueError("Product reference has no id")
    return product_ref, {}
