# storefront/repos/cart_codec.py
import json
from typing import Iterable, List

from pydantic import ValidationError

from storefront.domain.schemas import LineItem
from storefront.utils.validators import coerce_quantity
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1


def encode_cart(items: Iterable[LineItem]) -> str:
    return json.dumps(
        {
            "version": SCHEMA_VERSION,
            "items": [i.to_record() for i in items],
        }
    )


def decode_cart(raw) -> List[LineItem]:
    """
    Odtwarza koszyk z zapisanego JSONa.
    Uszkodzony zapis = pusty koszyk (tak jak w przegladarce).
    """
    if raw is None or raw == "" or raw == b"":
        return []

    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Uszkodzony zapis koszyka, start z pustym: {e}")
        return []

    return items_from_records(data)


def items_from_records(data) -> List[LineItem]:
    if isinstance(data, dict):
        version = data.get("version")
        if isinstance(version, int) and version > SCHEMA_VERSION:
            logger.warning(f"Cart snapshot version {version} is newer than {SCHEMA_VERSION}")
        records = data.get("items") or []
    elif isinstance(data, list):
        #stary format bez wersji: goła tablica
        records = data
    else:
        logger.warning(f"Unexpected cart snapshot type {type(data).__name__}")
        return []

    merged: dict[str, LineItem] = {}

    for rec in records:
        item = _record_to_item(rec)
        if item is None:
            continue

        existing = merged.get(item.key)
        if existing:
            merged[item.key] = existing.model_copy(
                update={"quantity": existing.quantity + item.quantity}
            )
        else:
            merged[item.key] = item

    return list(merged.values())


def _record_to_item(rec) -> LineItem | None:
    if not isinstance(rec, dict) or rec.get("id") in (None, ""):
        return None

    rec = dict(rec)
    rec["quantity"] = coerce_quantity(rec.get("quantity"))

    try:
        return LineItem.model_validate(rec)
    except ValidationError:
        pass

    #zle podpowiedzi (cena, nazwa) nie moga zgubic pozycji
    try:
        return LineItem.model_validate({"id": rec["id"], "quantity": rec["quantity"]})
    except ValidationError as e:
        logger.warning(f"Pomijam niepoprawna pozycje koszyka {rec!r}: {e}")
        return None
