"""
Database models package.
Import all models here so init_beanie sees every document.
"""
from costbook.models.customer import Client, ClientBase, Project, ProjectBase
from costbook.models.line_item import (
    LineItem,
    QuoteLineItem,
    LineItemCategory,
    PercentMarkup,
    AmountMarkup,
    CATEGORY_DISPLAY_MAP,
)
from costbook.models.estimate import Estimate, EstimateBase, EstimateStatus
from costbook.models.quote import Quote, QuoteBase, QuoteStatus
from costbook.models.change_order import ChangeOrder, ChangeOrderBase, ChangeOrderStatus
from costbook.models.expense import Expense, ExpenseBase, TransactionType
from costbook.models.quickbooks import (
    QuickBooksAccountMapping,
    QuickBooksAccountMappingBase,
    QuickBooksTransactionSync,
    QuickBooksTransactionSyncBase,
    SyncStatus,
)

DOCUMENT_MODELS = [
    Client,
    Project,
    Estimate,
    Quote,
    ChangeOrder,
    Expense,
    QuickBooksAccountMapping,
    QuickBooksTransactionSync,
]

__all__ = [
    "Client",
    "ClientBase",
    "Project",
    "ProjectBase",
    "LineItem",
    "QuoteLineItem",
    "LineItemCategory",
    "PercentMarkup",
    "AmountMarkup",
    "CATEGORY_DISPLAY_MAP",
    "Estimate",
    "EstimateBase",
    "EstimateStatus",
    "Quote",
    "QuoteBase",
    "QuoteStatus",
    "ChangeOrder",
    "ChangeOrderBase",
    "ChangeOrderStatus",
    "Expense",
    "ExpenseBase",
    "TransactionType",
    "QuickBooksAccountMapping",
    "QuickBooksAccountMappingBase",
    "QuickBooksTransactionSync",
    "QuickBooksTransactionSyncBase",
    "SyncStatus",
    "DOCUMENT_MODELS",
]
