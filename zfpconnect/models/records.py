"""
Pydantic models for ZFP response records.

This module defines the structured results returned by the information
commands, implemented as immutable Pydantic models with validation.

Design principles:
- All models are frozen (immutable)
- Field ranges mirror the limits enforced by the device
- Records are built only from fully decoded payloads; the decoders in
  zfpconnect.parsers never produce partially populated records
"""

from __future__ import annotations

from datetime import datetime
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

STATUS_BYTE_COUNT: Final[int] = 5
"""Number of status bytes (ST0..ST4) in a status response."""


def _bit(data: bytes, index: int, bit: int) -> bool:
    return bool(data[index] & (1 << bit))


class DeviceStatus(BaseModel):
    """
    Device status flags (command 0x20).

    The status response carries five bytes ST0..ST4. Each flag is a single
    bit; unassigned bits are ignored but kept in ``raw``.

    Example:
        >>> status = DeviceStatus.from_bytes(bytes([0x80, 0x81, 0x82, 0xA0, 0x80]))
        >>> status.paper_out, status.fiscal_receipt_open, status.fiscalized
        (True, True, True)
    """

    model_config = ConfigDict(frozen=True)

    # ST0 - general errors
    fiscal_memory_read_only: bool = Field(description="Fiscal memory is read-only")
    power_down_in_fiscal_receipt: bool = Field(description="Power failed while a fiscal receipt was open")
    printer_overheated: bool = Field(description="Printer head overheated")
    clock_not_set: bool = Field(description="Date/time not set")
    clock_incorrect: bool = Field(description="Date/time incorrect")
    ram_reset: bool = Field(description="RAM was reset")
    hardware_clock_error: bool = Field(description="Hardware clock error")

    # ST1 - printer and reports
    paper_out: bool = Field(description="Paper out")
    registers_overflow: bool = Field(description="Report registers overflow")
    daily_report_not_zeroed: bool = Field(description="Daily report not zeroed")
    article_report_not_zeroed: bool = Field(description="Article report not zeroed")
    operator_report_not_zeroed: bool = Field(description="Operator report not zeroed")
    duplicate_printed: bool = Field(description="Duplicate already printed")

    # ST2 - receipts
    nonfiscal_receipt_open: bool = Field(description="Non-fiscal receipt open")
    fiscal_receipt_open: bool = Field(description="Fiscal receipt open")
    detailed_receipt_open: bool = Field(description="Detailed fiscal receipt open")
    vat_receipt_open: bool = Field(description="Fiscal receipt with VAT open")
    invoice_open: bool = Field(description="Invoice open")

    # ST3 - fiscal memory
    fiscal_memory_missing: bool = Field(description="Fiscal memory module missing")
    fiscal_memory_failure: bool = Field(description="Fiscal memory failure")
    fiscal_memory_full: bool = Field(description="Fiscal memory full")
    fiscal_memory_near_full: bool = Field(description="Fiscal memory nearly full")
    fiscalized: bool = Field(description="Device is fiscalized")

    # ST4 - configuration
    auto_cut: bool = Field(description="Automatic paper cut enabled")
    transparent_display: bool = Field(description="External display in transparent mode")
    auto_open_till: bool = Field(description="Drawer opens automatically")
    print_logo: bool = Field(description="Logo printed on receipts")

    raw: bytes = Field(min_length=STATUS_BYTE_COUNT, description="Status bytes as received")

    @property
    def has_error(self) -> bool:
        """Check if any flag that blocks fiscal operations is set."""
        return any((
            self.fiscal_memory_read_only,
            self.printer_overheated,
            self.clock_not_set,
            self.hardware_clock_error,
            self.paper_out,
            self.registers_overflow,
            self.fiscal_memory_missing,
            self.fiscal_memory_failure,
            self.fiscal_memory_full,
        ))

    @classmethod
    def from_bytes(cls, data: bytes) -> DeviceStatus:
        """
        Build a status record from the raw status bytes.

        Args:
            data: At least five status bytes.

        Returns:
            DeviceStatus instance.

        Raises:
            ValueError: If fewer than five bytes are given.
        """
        if len(data) < STATUS_BYTE_COUNT:
            raise ValueError(f"Status needs {STATUS_BYTE_COUNT} bytes, got {len(data)}")

        return cls(
            fiscal_memory_read_only=_bit(data, 0, 0),
            power_down_in_fiscal_receipt=_bit(data, 0, 1),
            printer_overheated=_bit(data, 0, 2),
            clock_not_set=_bit(data, 0, 3),
            clock_incorrect=_bit(data, 0, 4),
            ram_reset=_bit(data, 0, 5),
            hardware_clock_error=_bit(data, 0, 6),
            paper_out=_bit(data, 1, 0),
            registers_overflow=_bit(data, 1, 1),
            daily_report_not_zeroed=_bit(data, 1, 3),
            article_report_not_zeroed=_bit(data, 1, 4),
            operator_report_not_zeroed=_bit(data, 1, 5),
            duplicate_printed=_bit(data, 1, 6),
            nonfiscal_receipt_open=_bit(data, 2, 0),
            fiscal_receipt_open=_bit(data, 2, 1),
            detailed_receipt_open=_bit(data, 2, 2),
            vat_receipt_open=_bit(data, 2, 3),
            invoice_open=_bit(data, 2, 4),
            fiscal_memory_missing=_bit(data, 3, 0),
            fiscal_memory_failure=_bit(data, 3, 1),
            fiscal_memory_full=_bit(data, 3, 2),
            fiscal_memory_near_full=_bit(data, 3, 3),
            fiscalized=_bit(data, 3, 5),
            auto_cut=_bit(data, 4, 0),
            transparent_display=_bit(data, 4, 1),
            auto_open_till=_bit(data, 4, 4),
            print_logo=_bit(data, 4, 5),
            raw=bytes(data),
        )


class FiscalIdentity(BaseModel):
    """
    Factory and fiscal memory numbers (command 0x60).
    """

    model_config = ConfigDict(frozen=True)

    factory_number: str = Field(max_length=8, description="Factory (serial) number")
    fiscal_number: str = Field(max_length=8, description="Fiscal memory number")

    def __str__(self) -> str:
        return f"{self.factory_number}/{self.fiscal_number}"


class ArticleRecord(BaseModel):
    """
    Article programmed in the device database (command 0x6B).
    """

    model_config = ConfigDict(frozen=True)

    number: int = Field(ge=0, le=99999, description="Article number")
    name: str = Field(max_length=20, description="Article name")
    price: float = Field(description="Unit price")
    tax_group: str = Field(min_length=1, max_length=1, description="Tax group designator")
    turnover: float = Field(description="Accumulated turnover")
    sales: float = Field(description="Accumulated sold quantity")
    report_counter: int = Field(ge=0, description="Article report counter")
    report_date_time: datetime = Field(description="Date/time of the last article report")


class TaxGroupTable(BaseModel):
    """
    Per-tax-group values (percentages for 0x62, daily sums for 0x6D).

    Groups are indexed from 0 in the order the device reports them.
    """

    model_config = ConfigDict(frozen=True)

    values: tuple[float, ...] = Field(description="Value per tax group")

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> float:
        return self.values[index]


class PaymentTypeTable(BaseModel):
    """
    Names of the additional payment types (command 0x64).
    """

    model_config = ConfigDict(frozen=True)

    names: tuple[str, ...] = Field(description="Payment type names, type 1 first")

    @field_validator("names")
    @classmethod
    def strip_names(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(name.strip() for name in v)

    def __len__(self) -> int:
        return len(self.names)

    def __getitem__(self, index: int) -> str:
        return self.names[index]


class DeviceParameters(BaseModel):
    """
    General device parameters (commands 0x45 / 0x65).
    """

    model_config = ConfigDict(frozen=True)

    pos_number: int = Field(ge=0, le=9999, description="POS (fiscal device) number")
    print_logo: bool = Field(description="Print logo on receipts")
    auto_open_till: bool = Field(description="Open drawer automatically")
    auto_cut: bool = Field(description="Cut paper automatically")
    transparent_display: bool = Field(description="External display in transparent mode")


class OperatorInfo(BaseModel):
    """
    Operator name and password (command 0x6A).
    """

    model_config = ConfigDict(frozen=True)

    number: int = Field(ge=1, le=9, description="Operator number")
    name: str = Field(max_length=20, description="Operator name")
    password: str = Field(max_length=4, description="Operator password")

    def __repr__(self) -> str:
        return f"OperatorInfo(number={self.number}, name={self.name!r})"


class ReceiptInfo(BaseModel):
    """
    State of the current receipt (command 0x72).
    """

    model_config = ConfigDict(frozen=True)

    is_open: bool = Field(description="A receipt is open")
    item_count: int = Field(ge=0, description="Sales registered on the receipt")
    total: float = Field(description="Receipt total so far")
    paid: float = Field(description="Amount paid so far")
    tax_sums: tuple[float, ...] = Field(default=(), description="Sum per tax group, if reported")

    @property
    def remaining(self) -> float:
        """Amount still to be paid."""
        return self.total - self.paid
