"""Command line interface for the inventory store."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import typer
import uvicorn

from .config import Settings, configure_logging, get_settings
from .export import export_csv
from .service import InventoryService, is_error

app = typer.Typer(help="Manage the stock ledger inventory store.")


def _print_header(title: str) -> None:
    typer.secho(title, bold=True, fg=typer.colors.CYAN)


def _resolve_settings() -> Settings:
    settings = get_settings()
    configure_logging(settings.log_level)
    return settings


@contextmanager
def _open_service() -> Iterator[InventoryService]:
    service = InventoryService.from_settings(_resolve_settings())
    try:
        yield service
    finally:
        service.close()


def _check(result: Any) -> Any:
    if is_error(result):
        typer.secho(result["message"], fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return result


def _print_products(products: list[dict[str, Any]]) -> None:
    for product in products:
        typer.echo(
            f"- #{product['id']} {product['name']} | qty={product['quantity']} "
            f"min={product['min_quantity']} | {product['category'] or '-'} @ {product['location'] or '-'}"
        )


@app.command()
def run(
    host: Optional[str] = typer.Option(None, help="Hostname to bind"),
    port: Optional[int] = typer.Option(None, help="Port to expose"),
    reload: Optional[bool] = typer.Option(None, help="Enable auto-reload"),
    log_level: Optional[str] = typer.Option(None, help="Uvicorn log level"),
) -> None:
    """Start the HTTP service using Uvicorn."""

    settings = _resolve_settings()

    uvicorn.run(
        "stockledger.app:create_app",
        host=host or settings.host,
        port=port or settings.port,
        reload=settings.reload if reload is None else reload,
        log_level=log_level or settings.log_level,
        factory=True,
    )


@app.command()
def init_db() -> None:
    """Create the SQLite database and tables."""

    with _open_service() as service:
        typer.echo(f"Database initialised at {service.store.path}")


@app.command()
def show_paths() -> None:
    """Print out important filesystem paths."""

    settings = _resolve_settings()
    typer.echo(f"Database: {settings.database_path}")
    typer.echo(f"Data directory: {settings.database_path.parent}")


@app.command("list-products")
def list_products(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter on name or category"),
    page: int = typer.Option(1, help="1-indexed page number"),
    page_size: Optional[int] = typer.Option(None, help="Rows per page"),
) -> None:
    """Display one page of the product catalog."""

    with _open_service() as service:
        result = _check(service.get_products_paged(search, page, page_size))
    if not result["items"]:
        typer.echo(f"No products on page {result['page']} of {result['totalPages']}.")
        return
    _print_header(f"Products (page {result['page']}/{result['totalPages']}, {result['totalItems']} total)")
    _print_products(result["items"])


@app.command("add-product")
def add_product(
    name: str = typer.Argument(..., help="Product name"),
    quantity: int = typer.Option(0, help="Initial quantity"),
    min_quantity: int = typer.Option(0, help="Low stock threshold"),
    category: Optional[str] = typer.Option(None, help="Category"),
    location: Optional[str] = typer.Option(None, help="Storage location"),
) -> None:
    """Create a product in the catalog."""

    with _open_service() as service:
        result = _check(
            service.create_product(
                {
                    "name": name,
                    "quantity": quantity,
                    "min_quantity": min_quantity,
                    "category": category,
                    "location": location,
                }
            )
        )
    typer.secho(f"Created product {name} (id={result['id']})", fg=typer.colors.GREEN)


@app.command("delete-product")
def delete_product(
    product_id: int = typer.Argument(..., help="Product id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete a product together with its movements."""

    if not yes:
        typer.confirm(f"Delete product {product_id} and all of its movements?", abort=True)
    with _open_service() as service:
        _check(service.delete_product(product_id))
    typer.secho(f"Deleted product {product_id}", fg=typer.colors.GREEN)


@app.command()
def move(
    product_id: int = typer.Argument(..., help="Product id"),
    movement_type: str = typer.Argument(..., metavar="TYPE", help="INBOUND or OUTBOUND"),
    quantity: int = typer.Argument(..., help="Positive quantity"),
    note: Optional[str] = typer.Option(None, help="Free text note"),
) -> None:
    """Record a stock movement."""

    with _open_service() as service:
        result = _check(
            service.add_movement(
                {"product_id": product_id, "type": movement_type, "quantity": quantity, "note": note}
            )
        )
    typer.secho(f"Recorded movement #{result['id']} at {result['date']}", fg=typer.colors.GREEN)


@app.command()
def movements() -> None:
    """Display the movement ledger, newest first."""

    with _open_service() as service:
        rows = _check(service.get_movements())
    if not rows:
        typer.echo("No movements recorded.")
        return
    _print_header("Movements")
    for row in rows:
        typer.echo(
            f"- #{row['id']} {row['date']} {row['type']} {row['quantity']} "
            f"{row['product_name'] or '?'} {row['note'] or ''}".rstrip()
        )


@app.command("low-stock")
def low_stock() -> None:
    """Display products below their minimum quantity."""

    with _open_service() as service:
        products = _check(service.low_stock())
    if not products:
        typer.echo("No products below their minimum.")
        return
    _print_header("Low stock")
    _print_products(products)


@app.command()
def export(path: Path = typer.Argument(..., help="Destination CSV file")) -> None:
    """Write the full catalog to a CSV file."""

    with _open_service() as service:
        rows = _check(service.export_snapshot())
    count = export_csv(rows, path)
    typer.secho(f"Exported {count} product(s) to {path}", fg=typer.colors.GREEN)


def main() -> None:
    """Entry-point for console scripts."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
