"""
Data models for ZFP response records.

This module contains Pydantic models representing the structured results
of the information commands:

- Device status flags
- Fiscal identity (factory and fiscal memory numbers)
- Article, operator and receipt records
- Tax group, payment type and parameter tables
"""

from zfpconnect.models.records import (
    ArticleRecord,
    DeviceParameters,
    DeviceStatus,
    FiscalIdentity,
    OperatorInfo,
    PaymentTypeTable,
    ReceiptInfo,
    TaxGroupTable,
)

__all__ = [
    # Status
    "DeviceStatus",
    "FiscalIdentity",
    # Records
    "ArticleRecord",
    "OperatorInfo",
    "ReceiptInfo",
    # Tables
    "TaxGroupTable",
    "PaymentTypeTable",
    "DeviceParameters",
]
