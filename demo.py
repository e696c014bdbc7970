#!/usr/bin/env python
from sdk.storefront import StoreClient

def main():
    c = StoreClient(base_url="http://127.0.0.1:8085")

    # -----------------------------
    # Log in as the seeded admin
    # -----------------------------
    print("Logging in as admin...")
    print(c.login("admin@example.com", "admin123")["user"])

    # -----------------------------
    # Create a product
    # -----------------------------
    print("\nCreating product...")
    prod = c.create_product(name="Demo Runner", brand="Demo", model="Runner One",
                            price=80, originalPrice=100, stock=3, sizes=["8", "9"])
    print(prod["sku"], prod["discountPercentage"])

    # -----------------------------
    # Browse
    # -----------------------------
    print("\nListing products...")
    page = c.list_products(limit=5, sort_by="price", sort_order="ASC")
    print(page["meta"])
    print("\nSearching for 'runner'...")
    print([p["name"] for p in c.search_products("runner")])

    # -----------------------------
    # Cart
    # -----------------------------
    session_id = c.new_session()
    print(f"\nCart session {session_id}")
    c.add_to_cart(prod["id"], 1, size="8")
    c.add_to_cart(prod["id"], 1, size="8")
    cart = c.view_cart()
    print(f"items={cart['totalItems']} subtotal={cart['subtotal']} total={cart['total']}")

    print("\nClearing cart...")
    c.clear_cart()
    print(c.cart_count())

if __name__ == "__main__":
    main()
