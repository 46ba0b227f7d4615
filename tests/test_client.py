"""Tests for FiscalPrinterClient."""

import math
from datetime import date, datetime

import pytest

from zfpconnect import FiscalPrinterClient
from zfpconnect.config import SessionSettings
from zfpconnect.exceptions import (
    ArtifactError,
    DeviceError,
    InvalidInputError,
    ResponseDecodeError,
)
from zfpconnect.protocol.constants import CommandCode
from zfpconnect.protocol.encoding import Alignment
from zfpconnect.protocol.error_codes import CommandRejection, DeviceState
from zfpconnect.session import PrinterSession
from zfpconnect.transport.mock import PrinterSimulator

FAST = SessionSettings(ping_timeout=0.1, response_timeout=0.2, ping_retries=2, poll_interval=0.01)


class TestClientSetup:
    """Tests for client construction and lifecycle."""

    def test_session_with_settings_rejected(self):
        """Test settings cannot be combined with an existing session."""
        session = PrinterSession(PrinterSimulator())
        with pytest.raises(ValueError):
            FiscalPrinterClient(session, FAST)

    def test_wraps_existing_session(self):
        """Test an existing session is used as is."""
        session = PrinterSession(PrinterSimulator(), FAST)
        client = FiscalPrinterClient(session)
        assert client.session is session
        assert client.encoding == "cp1251"

    @pytest.mark.asyncio
    async def test_context_manager(self):
        """Test async with opens and closes."""
        simulator = PrinterSimulator()
        async with FiscalPrinterClient(simulator, FAST) as printer:
            assert printer.is_open is True
            assert "mock://printer" in repr(printer)
        assert printer.is_open is False
        assert "closed" in repr(printer)


class TestFiscalReceipt:
    """Tests for the fiscal receipt flow."""

    @pytest.fixture
    def simulator(self):
        """Create a PrinterSimulator instance."""
        return PrinterSimulator()

    @pytest.fixture
    def client(self, simulator):
        """Create a FiscalPrinterClient over the simulator."""
        return FiscalPrinterClient(simulator, FAST)

    @pytest.mark.asyncio
    async def test_full_receipt(self, client, simulator):
        """Test open, two sales, subtotal, payment and close."""
        await client.open_fiscal_receipt(1, "0000")
        await client.sell_free("Bread", "B", 2.34, 1)
        await client.sell_free("Milk", "B", 1.0, 3.54)

        total = await client.calc_intermediate_sum()
        assert total == pytest.approx(5.88)

        await client.payment(total)
        await client.close_fiscal_receipt()

        assert simulator.closed_receipts == [pytest.approx(5.88)]
        assert simulator.commands == [
            CommandCode.OPEN_FISCAL_RECEIPT,
            CommandCode.SELL_FREE,
            CommandCode.SELL_FREE,
            CommandCode.INTERMEDIATE_SUM,
            CommandCode.PAYMENT,
            CommandCode.CLOSE_FISCAL_RECEIPT,
        ]

    @pytest.mark.asyncio
    async def test_open_receipt_payload(self, client, simulator):
        """Test the open receipt fields."""
        await client.open_fiscal_receipt(1, "0000")
        assert simulator.received_commands[-1] == (CommandCode.OPEN_FISCAL_RECEIPT, b"1;0000;0;0;2")

    @pytest.mark.asyncio
    async def test_open_detailed_vat_receipt(self, client, simulator):
        """Test the detailed and VAT flags."""
        await client.open_fiscal_receipt(3, "12", detailed=True, vat=True)
        assert simulator.received_commands[-1][1] == b"3;12  ;1;1;2"

    @pytest.mark.asyncio
    async def test_sell_free_payload(self, client, simulator):
        """Test the sale line layout."""
        await client.open_fiscal_receipt(1, "0000")
        await client.sell_free("Bread", "B", 2.345, 1)

        expected = ("Bread".ljust(36) + ";B;0000002.34*000001.000").encode("cp1251")
        assert simulator.received_commands[-1] == (CommandCode.SELL_FREE, expected)

    @pytest.mark.asyncio
    async def test_sell_free_cyrillic_and_discount(self, client, simulator):
        """Test cp1251 names and a percentage discount."""
        await client.open_fiscal_receipt(1, "0000")
        await client.sell_free("Хляб", "Б", 10.0, 1, discount=-10)

        payload = simulator.received_commands[-1][1]
        assert payload.startswith("Хляб".encode("cp1251"))
        assert payload.endswith(";\xc1;0000010.00*000001.000, -10.00%".encode("latin-1"))
        assert simulator.receipt_total == pytest.approx(9.0)

    @pytest.mark.asyncio
    async def test_intermediate_sum_with_discount(self, client, simulator):
        """Test percentage and absolute subtotal adjustments."""
        await client.open_fiscal_receipt(1, "0000")
        await client.sell_free("Item", "A", 10.0)

        assert await client.calc_intermediate_sum(discount=-5) == pytest.approx(9.5)
        assert simulator.received_commands[-1][1] == b"0;0, -5.00%"

        assert await client.calc_intermediate_sum(True, True, is_percent=False, discount=1.0) == pytest.approx(11.0)
        assert simulator.received_commands[-1][1] == b"1;1:0000001.00"

    @pytest.mark.asyncio
    async def test_payment_payload(self, client, simulator):
        """Test payment fields."""
        await client.open_fiscal_receipt(1, "0000")
        await client.payment(5.88, payment_type=1, no_change=True)
        assert simulator.received_commands[-1] == (CommandCode.PAYMENT, b"1;1;0000005.88")

    @pytest.mark.asyncio
    async def test_close_unpaid_receipt(self, client, simulator):
        """Test the device refuses to close an unpaid receipt."""
        await client.open_fiscal_receipt(1, "0000")
        await client.sell_free("Item", "A", 1.0)

        with pytest.raises(DeviceError) as exc_info:
            await client.close_fiscal_receipt()

        assert exc_info.value.code == 0x72
        assert exc_info.value.kind.state is DeviceState.PAYMENT_NOT_CLOSED
        assert simulator.fiscal_receipt_open is True

    @pytest.mark.asyncio
    async def test_open_twice(self, client):
        """Test opening a receipt while one is open."""
        await client.open_fiscal_receipt(1, "0000")
        with pytest.raises(DeviceError) as exc_info:
            await client.open_fiscal_receipt(1, "0000")
        assert exc_info.value.kind.state is DeviceState.FISCAL_RECEIPT_OPEN
        assert exc_info.value.kind.rejection is CommandRejection.ILLEGAL

    @pytest.mark.asyncio
    async def test_receipt_info(self, client):
        """Test the receipt state query."""
        await client.open_fiscal_receipt(1, "0000")
        await client.sell_free("Item", "A", 2.5, 2)

        info = await client.get_receipt_info()
        assert info.is_open is True
        assert info.item_count == 1
        assert info.total == pytest.approx(5.0)
        assert info.remaining == pytest.approx(5.0)

    @pytest.mark.asyncio
    async def test_status_reflects_receipt(self, client):
        """Test the status flags follow the open receipt."""
        assert (await client.get_status()).fiscal_receipt_open is False
        await client.open_fiscal_receipt(1, "0000")
        status = await client.get_status()
        assert status.fiscal_receipt_open is True
        assert status.fiscalized is True

    @pytest.mark.asyncio
    async def test_nonfiscal_receipt(self, client, simulator):
        """Test the service receipt flow."""
        await client.open_nonfiscal_receipt(2, "1234")
        assert simulator.received_commands[-1][1] == b"2;1234"
        await client.print_text("Total", Alignment.CENTER)
        assert simulator.received_commands[-1][1] == (" " * 14 + "Total" + " " * 15).encode()
        await client.close_nonfiscal_receipt()
        assert simulator.nonfiscal_receipt_open is False

    @pytest.mark.asyncio
    async def test_print_text_long_is_left_aligned(self, client, simulator):
        """Test text of full width ignores the alignment."""
        text = "x" * 40
        await client.print_text(text, Alignment.RIGHT)
        assert simulator.received_commands[-1][1] == b"x" * 34


class TestArticles:
    """Tests for the article database."""

    @pytest.fixture
    def simulator(self):
        """Create a PrinterSimulator instance."""
        return PrinterSimulator()

    @pytest.fixture
    def client(self, simulator):
        """Create a FiscalPrinterClient over the simulator."""
        return FiscalPrinterClient(simulator, FAST)

    @pytest.mark.asyncio
    async def test_set_and_get_article(self, client, simulator):
        """Test programming and reading back an article."""
        await client.set_article(7, "Bread", 1.2, "B")
        assert simulator.received_commands[-1][1] == ("00007;" + "Bread".ljust(20) + ";0000001.20;B").encode()

        article = await client.get_article(7)
        assert article.number == 7
        assert article.name == "Bread"
        assert article.price == pytest.approx(1.2)
        assert article.tax_group == "B"
        assert article.report_date_time == datetime(2024, 1, 15, 10, 30)

    @pytest.mark.asyncio
    async def test_sell_from_database(self, client, simulator):
        """Test sales and voids of database articles."""
        await client.set_article(7, "Bread", 1.2, "B")
        await client.open_fiscal_receipt(1, "0000")

        await client.sell_from_database(7, 2)
        assert simulator.received_commands[-1][1] == b"+;00007*000002.000"
        await client.sell_from_database(7, 1, void=True)
        assert simulator.received_commands[-1][1] == b"-;00007*000001.000"
        assert simulator.receipt_total == pytest.approx(1.2)

    @pytest.mark.asyncio
    async def test_unknown_article(self, client):
        """Test selling an article that is not programmed."""
        await client.open_fiscal_receipt(1, "0000")
        with pytest.raises(DeviceError) as exc_info:
            await client.sell_from_database(99)
        assert exc_info.value.code == 0x01


class TestQueries:
    """Tests for information queries."""

    @pytest.fixture
    def simulator(self):
        """Create a PrinterSimulator instance."""
        return PrinterSimulator()

    @pytest.fixture
    def client(self, simulator):
        """Create a FiscalPrinterClient over the simulator."""
        return FiscalPrinterClient(simulator, FAST)

    @pytest.mark.asyncio
    async def test_version(self, client):
        """Test the firmware version."""
        assert await client.get_version() == "ZFP SIMULATOR 1.00"

    @pytest.mark.asyncio
    async def test_fiscal_identity(self, client):
        """Test identity and its shortcuts."""
        identity = await client.get_fiscal_identity()
        assert str(identity) == "ZK000001/02000001"
        assert await client.get_factory_number() == "ZK000001"
        assert await client.get_fiscal_number() == "02000001"

    @pytest.mark.asyncio
    async def test_tax_percents(self, client):
        """Test the tax rate table."""
        table = await client.get_tax_percents()
        assert table.values == (20.0, 9.0, 0.0)

    @pytest.mark.asyncio
    async def test_date_time_round_trip(self, client, simulator):
        """Test setting and reading the clock."""
        await client.set_date_time(datetime(2025, 3, 4, 5, 6, 7))
        assert simulator.received_commands[-1][1] == b"04-03-2025 05:06:07"
        assert await client.get_date_time() == datetime(2025, 3, 4, 5, 6)

    @pytest.mark.asyncio
    async def test_custom_handler(self, client, simulator):
        """Test queries decode whatever the device sends."""
        simulator.set_handler(CommandCode.GET_PARAMETERS, lambda _: b"0012;1;0;1;0")
        simulator.set_handler(CommandCode.GET_OPERATOR, lambda p: p + b";Ivan;1234")
        simulator.set_handler(CommandCode.GET_FREE_FISCAL_SPACE, lambda _: b"1820")

        params = await client.get_parameters()
        assert params.pos_number == 12
        operator = await client.get_operator_info(3)
        assert operator.number == 3
        assert operator.name == "Ivan"
        assert await client.get_free_fiscal_space() == 1820

    @pytest.mark.asyncio
    async def test_ack_for_query(self, client, simulator):
        """Test a query answered by a bare ACK."""
        simulator.set_handler(CommandCode.GET_VERSION, None)
        with pytest.raises(ResponseDecodeError):
            await client.get_version()


class TestPayloads:
    """Tests for the exact payloads of setup and report commands."""

    @pytest.fixture
    def simulator(self):
        """Create a PrinterSimulator instance."""
        return PrinterSimulator()

    @pytest.fixture
    def client(self, simulator):
        """Create a FiscalPrinterClient over the simulator."""
        return FiscalPrinterClient(simulator, FAST)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call, command, payload",
        [
            (lambda c: c.display_line1("Hi"), CommandCode.DISPLAY_LINE1, b"Hi" + b" " * 18),
            (lambda c: c.display("Hello"), CommandCode.DISPLAY_TEXT, b"Hello" + b" " * 35),
            (lambda c: c.paper_cut(), CommandCode.PAPER_CUT, b""),
            (lambda c: c.set_operator(2, "Ivan", "12"), CommandCode.SET_OPERATOR, b"2;Ivan" + b" " * 16 + b";12  "),
            (lambda c: c.official_sums(1, "0000", 0, 10.0), CommandCode.OFFICIAL_SUMS, b"1;0000;0;0000010.00"),
            (lambda c: c.set_parameters(12, True, False, True, False), CommandCode.SET_PARAMETERS, b"0012;1;0;1;0"),
            (lambda c: c.set_tax_percents("000000", 20, 9, 0), CommandCode.SET_TAX_PERCENTS, b"000000;20.00%;9.00%;0.00%"),
            (lambda c: c.set_decimal_point("000000", 2), CommandCode.SET_DECIMAL_POINT, b"000000;2"),
            (lambda c: c.set_payment_type(1, "Card payments"), CommandCode.SET_TEXT_LINE, b"1;Card payme"),
            (lambda c: c.set_header_line(2, "SHOP"), CommandCode.SET_TEXT_LINE, b"2;SHOP"),
            (lambda c: c.make_fiscal("000000"), CommandCode.SET_TAX_NUMBER, b"000000;2"),
            (lambda c: c.report_daily(zero=True), CommandCode.REPORT_DAILY, b"Z"),
            (lambda c: c.report_daily(extended=True), CommandCode.REPORT_DAILY_EXTENDED, b"X"),
            (lambda c: c.report_operator(3, zero=True), CommandCode.REPORT_OPERATOR, b"Z;3"),
            (lambda c: c.report_articles(), CommandCode.REPORT_ARTICLES, b"X"),
            (lambda c: c.report_fiscal_by_block(1, 20), CommandCode.REPORT_FISCAL_BLOCK_BRIEF, b"0001;0020"),
            (lambda c: c.report_fiscal_by_block(1, 20, True), CommandCode.REPORT_FISCAL_BLOCK_DETAILED, b"0001;0020"),
            (
                lambda c: c.report_fiscal_by_date(date(2024, 1, 1), date(2024, 1, 31)),
                CommandCode.REPORT_FISCAL_DATE_BRIEF,
                b"010124;310124",
            ),
            (lambda c: c.set_external_display_data("000000", b"\x1b@"), CommandCode.REPORT_ARTICLES, b"000000\x1b@"),
        ],
    )
    async def test_payload(self, client, simulator, call, command, payload):
        """Test the bytes sent for each operation."""
        await call(client)
        assert simulator.received_commands[-1] == (command, payload)


class TestValidation:
    """Tests for argument validation before any write."""

    @pytest.fixture
    def simulator(self):
        """Create a PrinterSimulator instance."""
        return PrinterSimulator()

    @pytest.fixture
    def client(self, simulator):
        """Create a FiscalPrinterClient over the simulator."""
        return FiscalPrinterClient(simulator, FAST)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call, field",
        [
            (lambda c: c.open_fiscal_receipt(0, "0000"), "operator"),
            (lambda c: c.open_fiscal_receipt(10, "0000"), "operator"),
            (lambda c: c.sell_free("x", "A", math.nan), "price"),
            (lambda c: c.sell_free("x", "A", 100_000_000.0), "price"),
            (lambda c: c.sell_free("x", "A", 1.0, -1), "quantity"),
            (lambda c: c.sell_free("x", "A", 1.0, 1, discount=1000), "discount"),
            (lambda c: c.sell_free("x", "AB", 1.0), "tax_group"),
            (lambda c: c.sell_from_database(-1), "number"),
            (lambda c: c.payment(1.0, payment_type=5), "payment_type"),
            (lambda c: c.payment(-0.01), "amount"),
            (lambda c: c.official_sums(1, "0000", 4, 1.0), "sum_type"),
            (lambda c: c.get_header_line(9), "line"),
            (lambda c: c.get_operator_info(0), "operator"),
            (lambda c: c.get_article(1001), "number"),
            (lambda c: c.set_article(1, "x", 1.0e10, "A"), "price"),
            (lambda c: c.set_tax_percents("000000", 20, 101, 0), "group2"),
            (lambda c: c.set_decimal_point("000000", 10), "point"),
            (lambda c: c.set_payment_type(0, "x"), "payment_type"),
            (lambda c: c.set_parameters(10000, True, True, True, True), "pos_number"),
            (lambda c: c.report_operator(10), "operator"),
            (lambda c: c.report_fiscal_by_block(0, 10000), "end"),
            (lambda c: c.report_fiscal_by_date(date(2024, 2, 1), date(2024, 1, 1)), "start"),
            (lambda c: c.set_external_display_data("000000", b"x" * 102), "data"),
        ],
    )
    async def test_rejected_without_write(self, client, simulator, call, field):
        """Test out-of-range arguments raise before the transport is used."""
        with pytest.raises(InvalidInputError) as exc_info:
            await call(client)

        assert exc_info.value.code == 0x101
        assert exc_info.value.field == field
        assert simulator.written_data == []

    @pytest.mark.asyncio
    async def test_unencodable_text(self, client, simulator):
        """Test text the character set cannot carry."""
        with pytest.raises(InvalidInputError):
            await client.print_text("漢字")
        assert simulator.written_data == []


class TestArtifacts:
    """Tests for logo and display file uploads."""

    @pytest.fixture
    def simulator(self):
        """Create a PrinterSimulator instance."""
        return PrinterSimulator()

    @pytest.fixture
    def client(self, simulator):
        """Create a FiscalPrinterClient over the simulator."""
        return FiscalPrinterClient(simulator, FAST)

    @pytest.mark.asyncio
    async def test_upload_logo(self, client, simulator):
        """Test the logo block is written without a handshake."""
        bitmap = bytes(range(256)) * 15 + bytes(62)
        await client.upload_logo(bitmap)

        assert simulator.uploaded_logo == bitmap
        assert len(simulator.written_data) == 1
        assert simulator.written_data[0][:4] == b"\x02\x39\x37\x4c"
        assert simulator.commands == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", [0, 3901, 3903])
    async def test_upload_logo_wrong_size(self, client, simulator, size):
        """Test bitmaps of the wrong size."""
        with pytest.raises(ArtifactError) as exc_info:
            await client.upload_logo(bytes(size))
        assert exc_info.value.code == 0x108
        assert simulator.written_data == []

    @pytest.mark.asyncio
    async def test_upload_logo_file(self, client, simulator, tmp_path):
        """Test uploading a logo from disk."""
        path = tmp_path / "logo.bin"
        path.write_bytes(b"\xff" * 3902)
        await client.upload_logo_file(path)
        assert simulator.uploaded_logo == b"\xff" * 3902

    @pytest.mark.asyncio
    async def test_upload_logo_file_truncated(self, client, simulator, tmp_path):
        """Test longer logo files send only the bitmap prefix."""
        path = tmp_path / "logo.bin"
        path.write_bytes(b"\x0f" * 3902 + b"footer")
        await client.upload_logo_file(path)
        assert simulator.uploaded_logo == b"\x0f" * 3902

    @pytest.mark.asyncio
    async def test_upload_logo_file_too_short(self, client, simulator, tmp_path):
        """Test short logo files are rejected before any write."""
        path = tmp_path / "logo.bin"
        path.write_bytes(b"\x0f" * 100)
        with pytest.raises(ArtifactError) as exc_info:
            await client.upload_logo_file(path)
        assert exc_info.value.code == 0x108
        assert simulator.written_data == []

    @pytest.mark.asyncio
    async def test_missing_file(self, client, tmp_path):
        """Test unreadable files raise ArtifactError."""
        with pytest.raises(ArtifactError):
            await client.upload_logo_file(tmp_path / "missing.bin")
        with pytest.raises(ArtifactError):
            await client.set_external_display_file("000000", tmp_path / "missing.bin")

    @pytest.mark.asyncio
    async def test_display_file_truncated(self, client, simulator, tmp_path):
        """Test only the first 101 bytes of a display file are sent."""
        path = tmp_path / "display.bin"
        path.write_bytes(b"d" * 150)
        await client.set_external_display_file("000000", path)
        assert simulator.received_commands[-1] == (CommandCode.REPORT_ARTICLES, b"000000" + b"d" * 101)
