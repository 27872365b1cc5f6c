"""
Database module for Storefront Sync.
Implements SQLite persistence with async support.

Each workflow writes only its own record set:
- product details (inventory detail crawl)
- price update items (pricing decisions, consumed by price control)
- price comparisons (price comparison crawl)
"""

import json
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Iterable, List, Optional, Union

import aiosqlite

from core.models import PriceComparisonRecord, PriceUpdateItem, ProductDetailRecord

# Database configuration
DB_PATH = Path(os.getenv("DATABASE_PATH", Path(__file__).parent.parent / "data" / "storefront_sync.db"))

PathLike = Union[str, Path]


async def init_database(db_path: Optional[PathLike] = None):
    """Initialize the database schema."""
    path = Path(db_path or DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)

    async with aiosqlite.connect(path) as db:
        # Inventory rows scraped from the console
        await db.execute("""
            CREATE TABLE IF NOT EXISTS product_details (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id TEXT,
                seller_product_id TEXT,
                product_code TEXT,
                is_winner BOOLEAN DEFAULT 0,
                price INTEGER,
                shipping_cost INTEGER DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Pending price changes
        await db.execute("""
            CREATE TABLE IF NOT EXISTS update_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id TEXT NOT NULL,
                vendor_item_id INTEGER NOT NULL,
                seller_product_id TEXT,
                product_name TEXT,
                new_price INTEGER NOT NULL,
                current_price INTEGER,
                winner_price INTEGER,
                seller_price INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Price management rows
        await db.execute("""
            CREATE TABLE IF NOT EXISTS price_comparisons (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                vendor_item_id INTEGER,
                vendor_inventory_id INTEGER,
                product_name TEXT,
                winner_status TEXT,
                raw_data TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("CREATE INDEX IF NOT EXISTS idx_product_details_job ON product_details(job_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_update_items_job ON update_items(job_id)")
        await db.commit()


class _Store:
    """Shared connection handling for the record stores."""

    table = ""

    def __init__(self, db_path: Optional[PathLike] = None):
        self.db_path = Path(db_path or DB_PATH)

    @asynccontextmanager
    async def get_db(self):
        """Get a database connection."""
        db = await aiosqlite.connect(self.db_path)
        db.row_factory = aiosqlite.Row
        try:
            yield db
        finally:
            await db.close()

    async def delete_all(self) -> int:
        async with self.get_db() as db:
            cursor = await db.execute(f"DELETE FROM {self.table}")
            await db.commit()
            return cursor.rowcount

    async def count(self) -> int:
        async with self.get_db() as db:
            cursor = await db.execute(f"SELECT COUNT(*) FROM {self.table}")
            row = await cursor.fetchone()
            return int(row[0])


class ProductDetailStore(_Store):
    table = "product_details"

    async def save_many(self, records: Iterable[ProductDetailRecord], job_id: str = "") -> int:
        rows = [
            (job_id, r.seller_product_id, r.product_code, int(bool(r.is_winner)), r.price, r.shipping_cost)
            for r in records
        ]
        if not rows:
            return 0
        async with self.get_db() as db:
            await db.executemany("""
                INSERT INTO product_details
                    (job_id, seller_product_id, product_code, is_winner, price, shipping_cost)
                VALUES (?, ?, ?, ?, ?, ?)
            """, rows)
            await db.commit()
        return len(rows)

    async def find_by_job_id(self, job_id: str) -> List[ProductDetailRecord]:
        async with self.get_db() as db:
            cursor = await db.execute(
                "SELECT * FROM product_details WHERE job_id = ? ORDER BY id", (job_id,)
            )
            rows = await cursor.fetchall()
        return [
            ProductDetailRecord(
                seller_product_id=row["seller_product_id"],
                product_code=row["product_code"],
                is_winner=bool(row["is_winner"]),
                price=row["price"],
                shipping_cost=row["shipping_cost"] or 0,
            )
            for row in rows
        ]


class UpdateItemStore(_Store):
    table = "update_items"

    async def save_many(self, items: Iterable[PriceUpdateItem], job_id: Optional[str] = None) -> int:
        rows = [
            (
                job_id or item.job_id,
                item.vendor_item_id,
                item.seller_product_id,
                item.product_name,
                item.new_price,
                item.current_price,
                item.winner_price,
                item.seller_price,
            )
            for item in items
        ]
        if not rows:
            return 0
        async with self.get_db() as db:
            await db.executemany("""
                INSERT INTO update_items
                    (job_id, vendor_item_id, seller_product_id, product_name,
                     new_price, current_price, winner_price, seller_price)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, rows)
            await db.commit()
        return len(rows)

    async def find_by_job_id(self, job_id: str) -> List[PriceUpdateItem]:
        async with self.get_db() as db:
            cursor = await db.execute(
                "SELECT * FROM update_items WHERE job_id = ? ORDER BY id", (job_id,)
            )
            rows = await cursor.fetchall()
        return [
            PriceUpdateItem(
                vendor_item_id=row["vendor_item_id"],
                new_price=row["new_price"],
                job_id=row["job_id"],
                current_price=row["current_price"],
                winner_price=row["winner_price"],
                seller_price=row["seller_price"],
                seller_product_id=row["seller_product_id"],
                product_name=row["product_name"],
            )
            for row in rows
        ]


class ComparisonStore(_Store):
    table = "price_comparisons"

    async def save_many(self, records: Iterable[PriceComparisonRecord]) -> int:
        rows = [
            (
                r.vendor_item_id,
                r.vendor_inventory_id,
                r.product_name,
                r.winner_status,
                json.dumps(r.raw, ensure_ascii=False, default=str),
            )
            for r in records
        ]
        if not rows:
            return 0
        async with self.get_db() as db:
            await db.executemany("""
                INSERT INTO price_comparisons
                    (vendor_item_id, vendor_inventory_id, product_name, winner_status, raw_data)
                VALUES (?, ?, ?, ?, ?)
            """, rows)
            await db.commit()
        return len(rows)

    async def find_by_winner_status(self, winner_status: str) -> List[PriceComparisonRecord]:
        async with self.get_db() as db:
            cursor = await db.execute(
                "SELECT * FROM price_comparisons WHERE winner_status = ? ORDER BY id", (winner_status,)
            )
            rows = await cursor.fetchall()
        return [
            PriceComparisonRecord.from_dict(json.loads(row["raw_data"] or "{}"), row["winner_status"])
            for row in rows
        ]
