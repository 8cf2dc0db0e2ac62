"""Inventory domain service (products and categories)."""

from dataclasses import replace
from decimal import Decimal
from typing import Optional

from loguru import logger

from tillbook.database.base import Database
from tillbook.domain.entities import Category, Price, Product, new_id
from tillbook.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    category_not_found,
    duplicate_sku,
    product_not_found,
)


class InventoryService:
    """Service for managing the product catalog and stock levels."""

    def __init__(self, db: Database):
        """Initialize inventory service.

        Args:
            db: Database instance
        """
        self.db = db

    def add_product(
        self,
        name: str,
        cost_price: Price,
        selling_price: Price,
        wholesale_price: Optional[Price] = None,
        sku: Optional[str] = None,
        stock: Decimal = Decimal("0"),
        category_id: Optional[str] = None,
        product_id: Optional[str] = None,
    ) -> Product:
        """Create a product.

        Args:
            name: Product name
            cost_price: Purchase price
            selling_price: Retail price
            wholesale_price: Wholesale price (defaults to selling price)
            sku: Optional unique SKU / barcode
            stock: Opening stock level
            category_id: Optional category ID
            product_id: Optional explicit ID (generated if omitted)

        Returns:
            Created product

        Raises:
            ValidationError: If name is empty or stock is negative
            ConflictError: If the SKU or ID is already used
            NotFoundError: If the category does not exist
        """
        if not name.strip():
            raise ValidationError("Product name cannot be empty")
        if stock < 0:
            raise ValidationError("Stock cannot be negative")
        sku = sku or None
        if sku is not None and self.db.get_product_by_sku(sku) is not None:
            raise ConflictError(duplicate_sku(sku))
        if product_id is not None and self.db.get_product(product_id) is not None:
            raise ConflictError(f"Product {product_id} already exists")
        self._check_category(category_id)

        product = Product(
            id=product_id or new_id("p"),
            name=name.strip(),
            sku=sku,
            stock=Decimal(stock),
            cost_price=cost_price,
            wholesale_price=wholesale_price or selling_price,
            selling_price=selling_price,
            category_id=category_id,
        )
        self.db.add_product(product)
        logger.info(f"Added product {product.id} ({product.name})")
        return product

    def update_product(
        self,
        product_id: str,
        name: Optional[str] = None,
        sku: Optional[str] = None,
        cost_price: Optional[Price] = None,
        wholesale_price: Optional[Price] = None,
        selling_price: Optional[Price] = None,
        category_id: Optional[str] = None,
    ) -> Product:
        """Update catalog fields of a product. Stock is changed with set_stock.

        Raises:
            NotFoundError: If product or category doesn't exist
            ConflictError: If the new SKU belongs to another product
        """
        product = self.require_product(product_id)

        updates = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Product name cannot be empty")
            updates["name"] = name.strip()
        if sku is not None:
            existing = self.db.get_product_by_sku(sku) if sku else None
            if existing is not None and existing.id != product_id:
                raise ConflictError(duplicate_sku(sku))
            updates["sku"] = sku or None
        if cost_price is not None:
            updates["cost_price"] = cost_price
        if wholesale_price is not None:
            updates["wholesale_price"] = wholesale_price
        if selling_price is not None:
            updates["selling_price"] = selling_price
        if category_id is not None:
            self._check_category(category_id)
            updates["category_id"] = category_id

        updated = replace(product, **updates)
        self.db.update_product(updated)
        return updated

    def set_stock(self, product_id: str, stock: Decimal) -> Product:
        """Overwrite a product's stock level (manual inventory count).

        Raises:
            NotFoundError: If product doesn't exist
            ValidationError: If stock is negative
        """
        if stock < 0:
            raise ValidationError("Stock cannot be negative")
        product = self.require_product(product_id)
        updated = replace(product, stock=Decimal(stock))
        self.db.update_product(updated)
        logger.info(f"Stock of {product_id} set from {product.stock} to {updated.stock}")
        return updated

    def delete_product(self, product_id: str) -> None:
        """Delete a product. Committed invoices keep their line snapshots."""
        self.require_product(product_id)
        self.db.delete_product(product_id)
        logger.info(f"Deleted product {product_id}")

    def get_product(self, product_id: str) -> Optional[Product]:
        """Get product by ID."""
        return self.db.get_product(product_id)

    def require_product(self, product_id: str) -> Product:
        """Get product by ID or raise NotFoundError."""
        product = self.db.get_product(product_id)
        if product is None:
            raise NotFoundError(product_not_found(product_id))
        return product

    def find_product_by_sku(self, sku: str) -> Optional[Product]:
        """Look up a product by SKU (barcode scan)."""
        return self.db.get_product_by_sku(sku)

    def list_products(self) -> list[Product]:
        """List all products."""
        return self.db.list_products()

    def search_products(
        self, term: Optional[str] = None, category_id: Optional[str] = None
    ) -> list[Product]:
        """Filter products by case-insensitive name/SKU substring and category."""
        needle = (term or "").strip().lower()
        results = []
        for product in self.db.list_products():
            if category_id is not None and product.category_id != category_id:
                continue
            if needle and needle not in product.name.lower() and needle not in (product.sku or "").lower():
                continue
            results.append(product)
        return results

    def add_category(
        self, name: str, parent_id: Optional[str] = None, category_id: Optional[str] = None
    ) -> Category:
        """Create a product category.

        Raises:
            ValidationError: If name is empty
            NotFoundError: If parent category doesn't exist
        """
        if not name.strip():
            raise ValidationError("Category name cannot be empty")
        self._check_category(parent_id)
        category = Category(id=category_id or new_id("cat"), name=name.strip(), parent_id=parent_id)
        self.db.add_category(category)
        return category

    def list_categories(self) -> list[Category]:
        """List all categories."""
        return self.db.list_categories()

    def _check_category(self, category_id: Optional[str]) -> None:
        if category_id is not None and self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))
