# cli.py
import os
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.text import Text
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

import requests

from sdk.storefront import StoreClient

console = Console()
c = StoreClient(base_url=os.getenv("STOREFRONT_URL", "http://127.0.0.1:8085"))


# Global state for status messages and caching
status_message = "Ready"
product_cache: List[Dict[str, Any]] = []
logged_in_as: Optional[str] = None

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


def _error_message(e: Exception) -> str:
    # pull the envelope message out of HTTP errors
    if isinstance(e, requests.HTTPError) and e.response is not None:
        try:
            return e.response.json().get("message", str(e))
        except ValueError:
            return f"HTTP {e.response.status_code}: {e.response.text}"
    return str(e)


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]], meta: Optional[Dict[str, Any]] = None):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    title = "📦 Products Catalog"
    if meta:
        title += f" (page {meta.get('page')}/{meta.get('totalPages')}, {meta.get('total')} total)"
    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=12)
    table.add_column("Name", style="bold", width=26)
    table.add_column("Brand", width=12)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Discount", justify="right", width=9)
    table.add_column("Stock", justify="right", width=7)
    table.add_column("SKU", width=18)

    for p in products:
        discount = p.get("discountPercentage")
        table.add_row(
            p.get("id", "N/A")[:12],
            p.get("name", "N/A"),
            p.get("brand", ""),
            f"${p.get('price', 0):.2f}",
            f"{discount:.2f}%" if discount else "-",
            str(p.get("stock", 0)),
            p.get("sku") or "-",
        )
    console.print(table)


def show_cart(cart: Dict[str, Any]):
    if not cart:
        console.print("[italic yellow]No cart data[/italic yellow]")
        return

    title = Text()
    title.append("🛒 Shopping Cart - ", style="bold")
    title.append(str(c.session_id or "no session")[:8], style="bold cyan")
    title.append(f" - Total: ${cart.get('total', 0):.2f}", style="bold green")

    items = cart.get("items", [])
    if not items:
        console.print(Panel("Your cart is empty 🛍️", title=title, style="blue"))
        return

    table = Table(box=box.ROUNDED, header_style="bold blue", show_lines=True)
    table.add_column("Item", style="dim", width=10)
    table.add_column("Product", style="bold", width=30)
    table.add_column("Size/Color", width=12)
    table.add_column("Qty", justify="right", width=6)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Line", justify="right", width=10)

    for it in items:
        variant = "/".join(v for v in (it.get("selectedSize"), it.get("selectedColor")) if v) or "-"
        table.add_row(
            it.get("id", "")[:10],
            it.get("productName", "Unknown"),
            variant,
            str(it.get("quantity", 0)),
            f"${it.get('price', 0):.2f}",
            f"${it.get('totalPrice', 0):.2f}",
        )
    console.print(Panel(table, title=title))

    totals = Table.grid(padding=(0, 2))
    totals.add_column(justify="right")
    totals.add_column(justify="right")
    totals.add_row("Items", str(cart.get("totalItems", 0)))
    totals.add_row("Subtotal", f"${cart.get('subtotal', 0):.2f}")
    totals.add_row("Shipping", f"${cart.get('shipping', 0):.2f}")
    totals.add_row("Import charges", f"${cart.get('importCharges', 0):.2f}")
    totals.add_row("[bold]Total[/bold]", f"[bold green]${cart.get('total', 0):.2f}[/bold green]")
    console.print(totals)


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper with exception handling
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner.
    Returns the result, or None after reporting the error.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except (requests.RequestException, KeyError, ValueError) as e:
        status_message = f"Error: {_error_message(e)}"
        console.print(show_status(status_message, False))
        return None


# ---------------------------
# Autocompletion helpers
# ---------------------------
def refresh_product_cache():
    global product_cache
    page = try_api(c.list_products, limit=100)
    product_cache = page["items"] if page else []


def get_product_completer():
    if not product_cache:
        refresh_product_cache()
    names = [p.get("name", "") for p in product_cache]
    ids = [p.get("id", "") for p in product_cache]
    return WordCompleter([n for n in (names + ids) if n], ignore_case=True)


def get_cart_item_completer():
    cart = try_api(c.view_cart) if c.session_id else None
    ids = [it["id"] for it in (cart or {}).get("items", [])]
    return WordCompleter(ids, ignore_case=True)


def resolve_product_id(entry: str) -> str:
    # accept either an id or a product name from the cache
    for p in product_cache:
        if entry.lower() == p.get("name", "").lower():
            return p["id"]
    return entry


def ensure_session():
    if not c.session_id:
        sid = try_api(c.new_session, success_msg="New cart session started")
        if sid:
            console.print(f"[dim]session: {sid}[/dim]")


# ---------------------------
# Layout and Header
# ---------------------------
def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "👟 Storefront",
        "[bold blue]Catalog & Cart CLI[/bold blue]",
        f"[dim]{logged_in_as or 'guest'} · {now}[/dim]"
    )
    return Panel(header, style="bold blue")


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_float(message: str, default: float = 10.0) -> float:
    while True:
        raw = Prompt.ask(message, default=str(default))
        try:
            return float(raw)
        except ValueError:
            console.print("[red]Please enter a valid number.[/red]")


def ask_optional(message: str) -> Optional[str]:
    value = Prompt.ask(message, default="").strip()
    return value or None


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message, product_cache, logged_in_as

    console.clear()
    console.print(create_header())
    refresh_product_cache()

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "7", "🛒 View cart"),
            ("2", "🔍 Search products", "8", "✏️ Update cart item"),
            ("3", "⭐ Featured / sale", "9", "➖ Remove cart item"),
            ("4", "ℹ️ Product details", "10", "🧹 Clear cart"),
            ("5", "➕ Add to cart", "11", "🔑 Login / register"),
            ("6", "🆕 New cart session", "12", "🏷️ Create product (admin)"),
            ("", "", "q", "👋 Quit")
        ]
        for row in options:
            menu_table.add_row(*row)

        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 13)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            page_no = IntPrompt.ask("Page", default=1)
            sort_by = Prompt.ask("Sort by", default="createdAt")
            page = try_api(c.list_products, page=page_no, sort_by=sort_by,
                           success_msg="Products loaded successfully")
            if page is not None:
                show_products(page["items"], page["meta"])

        elif choice == "2":
            term = prompt_with_autocomplete("Enter search term")
            res = try_api(c.search_products, term, success_msg=f"Search for '{term}' completed")
            if res is not None:
                show_products(res)

        elif choice == "3":
            featured = try_api(c.featured_products)
            if featured is not None:
                console.rule("Featured")
                show_products(featured)
            sale = try_api(c.sale_products)
            if sale is not None:
                console.rule("On sale")
                show_products(sale)

        elif choice == "4":
            pid = resolve_product_id(prompt_with_autocomplete("Product", completer=get_product_completer()))
            resp = try_api(c.get_product, pid, success_msg="Product details loaded")
            if resp:
                show_products([resp])
                if resp.get("sizes"):
                    console.print(f"Sizes: {', '.join(resp['sizes'])}")

        elif choice == "5":
            ensure_session()
            pid = resolve_product_id(prompt_with_autocomplete("Product", completer=get_product_completer()))
            qty = IntPrompt.ask("Quantity", default=1)
            size = ask_optional("Size (blank for none)")
            color = ask_optional("Color (blank for none)")
            resp = try_api(c.add_to_cart, pid, qty, size, color, success_msg=f"Added {qty} to cart")
            if resp is not None:
                show_cart(try_api(c.view_cart))

        elif choice == "6":
            sid = try_api(c.new_session, success_msg="New cart session started")
            if sid:
                console.print(f"[dim]session: {sid}[/dim]")

        elif choice == "7":
            ensure_session()
            resp = try_api(c.view_cart, success_msg="Cart loaded")
            if resp:
                show_cart(resp)

        elif choice == "8":
            ensure_session()
            item_id = prompt_with_autocomplete("Cart item id", completer=get_cart_item_completer())
            qty = IntPrompt.ask("New quantity", default=1)
            resp = try_api(c.update_cart_item, item_id, qty, success_msg="Cart item updated")
            if resp is not None:
                show_cart(try_api(c.view_cart))

        elif choice == "9":
            ensure_session()
            item_id = prompt_with_autocomplete("Cart item id", completer=get_cart_item_completer())
            try_api(c.remove_from_cart, item_id, success_msg="Item removed")
            show_cart(try_api(c.view_cart))

        elif choice == "10":
            ensure_session()
            if Confirm.ask("[red]Empty the cart?[/red]"):
                try_api(c.clear_cart, success_msg="Cart cleared")

        elif choice == "11":
            email = prompt_with_autocomplete("Email")
            password = Prompt.ask("Password", password=True)
            if Confirm.ask("New account?", default=False):
                first = Prompt.ask("First name")
                last = Prompt.ask("Last name")
                resp = try_api(c.register, email, password, first, last, success_msg="Registered")
            else:
                resp = try_api(c.login, email, password, success_msg="Logged in")
            if resp:
                user = resp["user"]
                logged_in_as = f"{user['email']} ({user['role']})"
                console.print(create_header())

        elif choice == "12":
            name = prompt_with_autocomplete("Product name")
            brand = Prompt.ask("Brand")
            model = Prompt.ask("Model")
            price = ask_float("💰 Price", default=100.0)
            original = ask_float("Original price (0 for none)", default=0.0)
            stock = IntPrompt.ask("📦 Stock", default=10)
            fields = {"name": name, "brand": brand, "model": model, "price": price, "stock": stock}
            if original > 0:
                fields["originalPrice"] = original
            resp = try_api(c.create_product, success_msg=f"Product '{name}' created", **fields)
            if resp:
                console.print(Panel(f"Created [green]{resp['id']}[/green] sku [bold]{resp['sku']}[/bold]"))
                refresh_product_cache()

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Thanks for shopping! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
