# demo_concurrent.py
import asyncio
from sdk.storefront import StoreClient

BASE = "http://127.0.0.1:8085"

async def main():
    c = StoreClient(base_url=BASE)
    c.login("admin@example.com", "admin123")
    prod = c.create_product(name="Last Pair", brand="Demo", model="Last", price=50, stock=1)
    session_id = c.new_session()

    # two tabs of the same cart racing for the single unit in stock
    results = await asyncio.gather(
        c.add_to_cart_async(prod["id"], 1, session_id),
        c.add_to_cart_async(prod["id"], 1, session_id),
    )
    for r in results:
        print(r.status_code, r.json()["message"])

    print("quantity in cart:", c.view_cart()["totalItems"])

if __name__ == "__main__":
    asyncio.run(main())
