# storefront/repos/cart_storage.py
import os
import tempfile
from pathlib import Path
from typing import List, Protocol, Sequence
from urllib.parse import urlparse

import redis
from redis.exceptions import RedisError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from storefront.data.database import Base, make_engine, make_session_factory
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import CartStorageError
from storefront.domain.schemas import LineItem
from storefront.repos.cart_codec import encode_cart, decode_cart
from storefront.utils.retry import redis_retry
from storefront.utils.settings import CART_STORAGE_KEY
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartStorage(Protocol):
    """Port zapisu koszyka: load() / save(items)."""

    key: str

    def load(self) -> List[LineItem]:
        ...

    def save(self, items: Sequence[LineItem]) -> None:
        ...


class InMemoryCartStorage:
    def __init__(self, key: str = CART_STORAGE_KEY, raw: str | None = None):
        self.key = key
        self.raw = raw
        self.saves = 0

    def load(self) -> List[LineItem]:
        return decode_cart(self.raw)

    def save(self, items: Sequence[LineItem]) -> None:
        self.raw = encode_cart(items)
        self.saves += 1


class JsonFileCartStorage:
    """Odpowiednik localStorage: jeden plik JSON, podmieniany atomowo."""

    def __init__(self, path: str | os.PathLike, key: str = CART_STORAGE_KEY):
        self.path = Path(path)
        self.key = key

    def load(self) -> List[LineItem]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise CartStorageError(f"Cannot read cart file {self.path}: {e}") from e
        return decode_cart(raw)

    def save(self, items: Sequence[LineItem]) -> None:
        payload = encode_cart(items)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.key}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise CartStorageError(f"Cannot write cart file {self.path}: {e}") from e


class RedisCartStorage:
    def __init__(self, url: str | None = None, key: str = CART_STORAGE_KEY, client=None):
        self.key = key
        self.redis = client or redis.Redis.from_url(url, decode_responses=True)

    @redis_retry()
    def _get(self):
        return self.redis.get(self._redis_key)

    @redis_retry()
    def _set(self, payload: str):
        return self.redis.set(self._redis_key, payload)

    @property
    def _redis_key(self) -> str:
        return f"storefront:{self.key}"

    def load(self) -> List[LineItem]:
        try:
            return decode_cart(self._get())
        except RedisError as e:
            raise CartStorageError(f"Cannot read cart from redis: {e}") from e

    def save(self, items: Sequence[LineItem]) -> None:
        try:
            self._set(encode_cart(items))
        except RedisError as e:
            raise CartStorageError(f"Cannot write cart to redis: {e}") from e


class SqlCartStorage:
    """
    Koszyk w tabeli cart_items, jeden wiersz na pozycje.
    save podmienia wszystkie wiersze klucza w jednej transakcji.
    """

    def __init__(self, url: str | None = None, key: str = CART_STORAGE_KEY, engine=None):
        self.key = key
        self.engine = engine or make_engine(url)
        self.session_factory = make_session_factory(self.engine)
        Base.metadata.create_all(bind=self.engine)

    def load(self) -> List[LineItem]:
        try:
            with self.session_factory() as db:
                rows = db.execute(
                    select(CartItemModel)
                    .where(CartItemModel.storage_key == self.key)
                    .order_by(CartItemModel.position)
                ).scalars().all()
        except SQLAlchemyError as e:
            raise CartStorageError(f"Cannot read cart from database: {e}") from e

        items = []
        for row in rows:
            items.append(
                LineItem(
                    product_id=int(row.product_id) if row.product_id_is_int else row.product_id,
                    quantity=max(row.quantity, 1),
                    cached_unit_price=row.price,
                    cached_name=row.name,
                    cached_image=row.image,
                )
            )
        return items

    def save(self, items: Sequence[LineItem]) -> None:
        try:
            with self.session_factory() as db:
                with db.begin():
                    db.execute(
                        delete(CartItemModel).where(CartItemModel.storage_key == self.key)
                    )
                    db.add_all(
                        [
                            CartItemModel(
                                storage_key=self.key,
                                position=pos,
                                product_id=item.key,
                                product_id_is_int=int(isinstance(item.product_id, int)),
                                quantity=item.quantity,
                                price=None if item.cached_unit_price is None else str(item.cached_unit_price),
                                name=item.cached_name,
                                image=item.cached_image,
                            )
                            for pos, item in enumerate(items)
                        ]
                    )
        except SQLAlchemyError as e:
            raise CartStorageError(f"Cannot write cart to database: {e}") from e


def build_storage(url: str, key: str = CART_STORAGE_KEY) -> CartStorage:
    """Wybor backendu po schemacie URL."""
    scheme = urlparse(url).scheme.lower()

    if scheme == "memory":
        return InMemoryCartStorage(key=key)

    if scheme == "file":
        #file://./sciezka/wzgledna albo file:///sciezka/absolutna
        path = url[len("file://"):]
        return JsonFileCartStorage(path, key=key)

    if scheme in ("redis", "rediss", "unix"):
        return RedisCartStorage(url, key=key)

    if scheme:
        logger.info(f"Cart storage: SQL ({scheme})")
        return SqlCartStorage(url, key=key)

    raise ValueError(f"Unsupported cart storage url: {url!r}")

