"""
Console workflows, each an explicit state machine.
"""

from workflows.base import ConsoleWorkflow, StateMachine
from workflows.detail_crawl import DetailCrawl, parse_inventory_row
from workflows.invoice_upload import InvoiceUpload
from workflows.non_conforming_purge import NonConformingPurge, find_matching_products
from workflows.order_confirmation import OrderConfirmation
from workflows.price_comparison_crawl import PriceComparisonCrawl

__all__ = [
    "ConsoleWorkflow",
    "StateMachine",
    "OrderConfirmation",
    "InvoiceUpload",
    "DetailCrawl",
    "PriceComparisonCrawl",
    "NonConformingPurge",
    "parse_inventory_row",
    "find_matching_products",
]
