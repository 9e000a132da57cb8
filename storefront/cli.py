# storefront/cli.py
import logging
import os

import click
import pandas as pd
from flask.cli import with_appcontext
from werkzeug.security import generate_password_hash

from .extensions import db
from .model import CartOfferProduct, Product, User
from .services.offers import OFFER_TIERS
from .utils.money import D

logger = logging.getLogger(__name__)


def _read_table(path):
    ext = os.path.splitext(path)[1].lower()
    if ext == ".xlsx":
        return pd.read_excel(path)
    return pd.read_csv(path)

def _normalize_columns(df):
    # "Product Name" / "product name" / "product_name" all map to product_name
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    return df

def _tier(value):
    if pd.isna(value):
        return None
    try:
        return str(int(float(value)))
    except (TypeError, ValueError):
        return None


@click.command("create-admin")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--first-name", default=None)
@click.option("--last-name", default=None)
@with_appcontext
def create_admin(email, password, first_name, last_name):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    u = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        password_hash=generate_password_hash(password),
        role="admin",
    )
    db.session.add(u); db.session.commit()
    click.echo(f"Admin created: {u.id} {u.email}")


@click.command("import-offers")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--replace", is_flag=True, help="Delete existing offer products first.")
@with_appcontext
def import_offers(path, replace):
    """Load cart offer products from a CSV or Excel sheet."""
    df = _normalize_columns(_read_table(path))
    missing = [c for c in ("product_name", "range", "our_price") if c not in df.columns]
    if missing:
        raise click.ClickException(f"Missing columns: {', '.join(missing)}")

    if replace:
        removed = CartOfferProduct.query.delete(synchronize_session=False)
        click.echo(f"Removed {removed} existing offer products")

    imported, skipped = 0, 0
    for idx, row in df.iterrows():
        name = str(row["product_name"]).strip() if not pd.isna(row["product_name"]) else ""
        tier = _tier(row["range"])
        price = D(row["our_price"])
        if not name or tier not in OFFER_TIERS or not price.is_finite() or price < 0:
            click.echo(f"Skipping row {idx + 2}: invalid name, range or price")
            skipped += 1
            continue

        image = row["product_image"] if "product_image" in df.columns else None
        qty = row["quantity"] if "quantity" in df.columns else None
        db.session.add(CartOfferProduct(
            product_name=name,
            product_image="" if image is None or pd.isna(image) else str(image).strip(),
            range=tier,
            our_price=price,
            quantity=1 if qty is None or pd.isna(qty) else int(qty),
        ))
        imported += 1

    db.session.commit()
    logger.info("Imported %d offer products from %s (%d skipped)", imported, path, skipped)
    click.echo(f"{imported} offer products imported, {skipped} skipped")


@click.command("export-products")
@click.argument("path", type=click.Path(dir_okay=False))
@with_appcontext
def export_products(path):
    """Write every product variant to a CSV or Excel sheet."""
    rows = []
    for p in Product.query.order_by(Product.created_at.asc()).all():
        for v in p.variants:
            rows.append({
                "Product ID": str(p.id),
                "Product": p.name,
                "SKU": p.sku,
                "Status": p.status,
                "Category": p.category.name if p.category else None,
                "Brand": p.brand.name if p.brand else None,
                "Variant ID": str(v.id),
                "Variant": v.name,
                "Variant SKU": v.sku,
                "MRP": float(v.mrp),
                "Our Price": float(v.our_price),
                "Stock": v.stock,
            })

    df = pd.DataFrame(rows)
    if os.path.splitext(path)[1].lower() == ".xlsx":
        df.to_excel(path, index=False)
    else:
        df.to_csv(path, index=False)
    click.echo(f"{len(rows)} variants exported to {path}")


def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(import_offers)
    app.cli.add_command(export_products)
