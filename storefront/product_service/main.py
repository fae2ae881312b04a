# storefront/product_service/main.py
import copy
import threading

from fastapi import FastAPI, HTTPException, Body

app = FastAPI(title="Product Service (dev mock)")

_SEED = {
    "1": {"id": 1, "name": "Keyboard", "price": 199.99, "stock": 10, "image": "keyboard.jpg", "description": "Mechanical keyboard"},
    "2": {"id": 2, "name": "Mouse", "price": 49.50, "stock": 25, "image": "mouse.jpg", "description": "Wireless mouse"},
    "3": {"id": 3, "name": "Monitor", "price": 899.00, "stock": 3, "image": "monitor.jpg", "description": "27 inch monitor"},
}

PRODUCTS: dict = {}
_lock = threading.Lock()


def reset_products(products: list[dict] | None = None) -> None:
    with _lock:
        PRODUCTS.clear()
        if products is None:
            PRODUCTS.update(copy.deepcopy(_SEED))
        else:
            PRODUCTS.update({str(p["id"]): dict(p) for p in products})


reset_products()


@app.get("/products")
def list_products():
    return list(PRODUCTS.values())


@app.get("/products/{product_id}")
def get_product(product_id: str):
    product = PRODUCTS.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.put("/products/{product_id}")
def replace_product(product_id: str, payload: dict = Body(...)):
    #json-server: PUT podmienia caly rekord
    with _lock:
        if product_id not in PRODUCTS:
            raise HTTPException(status_code=404, detail="Product not found")
        record = dict(payload)
        record["id"] = PRODUCTS[product_id]["id"]
        PRODUCTS[product_id] = record
        return record


@app.patch("/products/{product_id}")
def patch_product(product_id: str, payload: dict = Body(...)):
    with _lock:
        product = PRODUCTS.get(product_id)
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        product.update({k: v for k, v in payload.items() if k != "id"})
        return product
