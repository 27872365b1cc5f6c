"""
Tests for SQLite persistence of crawl output and pending price changes.
"""

import pytest

from api.database import ComparisonStore, ProductDetailStore, UpdateItemStore
from core.models import PriceComparisonRecord, PriceUpdateItem, ProductDetailRecord


@pytest.mark.integration
class TestProductDetailStore:

    @pytest.mark.asyncio
    async def test_save_and_find_by_job(self, db_path):
        store = ProductDetailStore(db_path)
        records = [
            ProductDetailRecord("1", "A100", True, 12900, 0),
            ProductDetailRecord("2", "B200", False, None, 3000),
        ]

        assert await store.save_many(records, job_id="job-1") == 2
        await store.save_many([ProductDetailRecord("3", "C300", False, 100)], job_id="job-2")

        found = await store.find_by_job_id("job-1")
        assert found == records
        assert await store.count() == 3

    @pytest.mark.asyncio
    async def test_empty_batch_writes_nothing(self, db_path):
        store = ProductDetailStore(db_path)
        assert await store.save_many([], job_id="job-1") == 0
        assert await store.count() == 0


@pytest.mark.integration
class TestUpdateItemStore:

    @pytest.mark.asyncio
    async def test_items_are_scoped_to_job(self, db_path):
        store = UpdateItemStore(db_path)
        await store.save_many([
            PriceUpdateItem(vendor_item_id=1, new_price=9900, job_id="", winner_price=9800),
        ], job_id="job-1")
        await store.save_many([
            PriceUpdateItem(vendor_item_id=2, new_price=100, job_id="job-2"),
        ])

        found = await store.find_by_job_id("job-1")

        assert [(i.vendor_item_id, i.new_price, i.winner_price, i.job_id) for i in found] == [
            (1, 9900, 9800, "job-1"),
        ]
        assert [i.vendor_item_id for i in await store.find_by_job_id("job-2")] == [2]


@pytest.mark.integration
class TestComparisonStore:

    @pytest.mark.asyncio
    async def test_save_count_clear(self, db_path):
        store = ComparisonStore(db_path)
        rows = [
            PriceComparisonRecord.from_dict({"vendorItemId": 1, "productName": "Lamp"}, "WIN_NOT_SUPPRESSED"),
            PriceComparisonRecord.from_dict({"vendorItemId": 2, "productName": "Desk"}, "LOSE_NOT_SUPPRESSED"),
        ]

        await store.save_many(rows)

        assert await store.count() == 2
        losing = await store.find_by_winner_status("LOSE_NOT_SUPPRESSED")
        assert [r.vendor_item_id for r in losing] == [2]
        assert losing[0].raw["productName"] == "Desk"

        assert await store.delete_all() == 2
        assert await store.count() == 0
