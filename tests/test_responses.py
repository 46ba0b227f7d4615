"""Tests for payload reading and response decoders."""

from datetime import datetime

import pytest

from zfpconnect.exceptions import ResponseDecodeError
from zfpconnect.models.records import ArticleRecord, DeviceStatus, ReceiptInfo
from zfpconnect.parsers.payload_reader import (
    PayloadReader,
    parse_date_time,
    parse_decimal,
    parse_flag,
    parse_integer,
)
from zfpconnect.parsers.responses import (
    ResponseDecoderRegistry,
    create_default_registry,
    decode_response,
)
from zfpconnect.protocol.constants import CommandCode
from zfpconnect.protocol.frames import build_ack_frame, build_frame, parse_frame


def data_frame(command, payload: bytes):
    """Build and parse a DATA frame as the session would return it."""
    _, frame = parse_frame(build_frame(0x21, command, payload))
    return frame


class TestPayloadReader:
    """Tests for PayloadReader."""

    def test_fixed_and_expect(self):
        """Test positional reads."""
        reader = PayloadReader(b"00001234;00005678", "cp1251")
        assert reader.read_fixed(8) == "00001234"
        reader.expect(";")
        assert reader.read_fixed(8) == "00005678"
        assert reader.is_at_end()

    def test_expect_mismatch(self):
        """Test a missing literal."""
        reader = PayloadReader(b"ab", "cp1251")
        with pytest.raises(ResponseDecodeError):
            reader.expect(";")

    def test_read_past_end(self):
        """Test reads beyond the payload."""
        reader = PayloadReader(b"abc", "cp1251")
        with pytest.raises(ResponseDecodeError):
            reader.read_fixed(4)
        with pytest.raises(ResponseDecodeError):
            reader.skip(4)

    def test_tokens(self):
        """Test token splitting with a trailing separator."""
        reader = PayloadReader(b"1;2;3;", "cp1251")
        assert reader.read_token() == "1"
        assert reader.read_tokens() == ["2", "3"]

    def test_tokens_count(self):
        """Test the token count check."""
        with pytest.raises(ResponseDecodeError):
            PayloadReader(b"1;2", "cp1251").read_tokens(3)
        assert PayloadReader(b"", "cp1251").read_tokens() == []

    def test_cp1251_text(self):
        """Test payload text is decoded in the session encoding."""
        reader = PayloadReader("Хляб".encode("cp1251"), "cp1251")
        assert reader.text == "Хляб"

    def test_invalid_encoding_deferred(self):
        """Test undecodable bytes fail only when text is read."""
        reader = PayloadReader(b"\x98\x80", "cp1251")
        assert reader.raw == b"\x98\x80"
        with pytest.raises(ResponseDecodeError):
            reader.read_rest()


class TestFieldParsers:
    """Tests for sub-field parsers."""

    def test_decimal(self):
        """Test '.' decimal parsing with padding."""
        assert parse_decimal(" 12.50 ") == 12.5
        assert parse_decimal("-0.01") == -0.01

    @pytest.mark.parametrize("token", ["", "12,50", "nan", "inf", "abc"])
    def test_decimal_invalid(self, token):
        """Test tokens that are not finite decimals."""
        with pytest.raises(ResponseDecodeError):
            parse_decimal(token)

    def test_integer_and_flag(self):
        """Test integer and flag parsing."""
        assert parse_integer(" 42") == 42
        assert parse_flag("1") is True
        assert parse_flag("0") is False
        with pytest.raises(ResponseDecodeError):
            parse_integer("4.2")
        with pytest.raises(ResponseDecodeError):
            parse_flag("2")

    def test_date_time(self):
        """Test the device clock format with 1-based months."""
        assert parse_date_time("15-01-2024 10:30") == datetime(2024, 1, 15, 10, 30)

    def test_date_time_two_digit_year(self):
        """Test two-digit years map to 20YY."""
        assert parse_date_time("31-12-24 23:59") == datetime(2024, 12, 31, 23, 59)

    @pytest.mark.parametrize("token", ["15-01-2024", "32-01-2024 10:30", "15-13-2024 10:30", "aa-01-2024 10:30"])
    def test_date_time_invalid(self, token):
        """Test malformed or impossible timestamps."""
        with pytest.raises(ResponseDecodeError):
            parse_date_time(token)


class TestDecoders:
    """Tests for the default decoders."""

    def test_status(self):
        """Test status bytes decode regardless of the text encoding."""
        frame = data_frame(CommandCode.GET_STATUS, bytes([0x98, 0x80, 0x82, 0xA0, 0x80]))
        status = decode_response(CommandCode.GET_STATUS, frame)
        assert isinstance(status, DeviceStatus)
        assert status.fiscal_receipt_open is True
        assert status.clock_not_set is True

    def test_status_short(self):
        """Test a truncated status payload."""
        frame = data_frame(CommandCode.GET_STATUS, bytes([0x80, 0x80]))
        with pytest.raises(ResponseDecodeError) as exc_info:
            decode_response(CommandCode.GET_STATUS, frame)
        assert exc_info.value.code == 0x106
        assert exc_info.value.command == CommandCode.GET_STATUS

    def test_version(self):
        """Test the version string is trimmed."""
        frame = data_frame(CommandCode.GET_VERSION, b"ZFP 1.00 \r")
        assert decode_response(CommandCode.GET_VERSION, frame) == "ZFP 1.00"

    def test_fiscal_identity(self):
        """Test factory and fiscal numbers."""
        frame = data_frame(CommandCode.GET_FISCAL_IDENTITY, b"ZK000001;02000001")
        identity = decode_response(CommandCode.GET_FISCAL_IDENTITY, frame)
        assert identity.factory_number == "ZK000001"
        assert identity.fiscal_number == "02000001"

    def test_fiscal_identity_truncated(self):
        """Test a short identity payload fails as a whole."""
        frame = data_frame(CommandCode.GET_FISCAL_IDENTITY, b"ZK000001;0200")
        with pytest.raises(ResponseDecodeError) as exc_info:
            decode_response(CommandCode.GET_FISCAL_IDENTITY, frame)
        assert exc_info.value.raw_data == b"ZK000001;0200"

    def test_tax_percents(self):
        """Test percent suffixes are dropped."""
        frame = data_frame(CommandCode.GET_TAX_PERCENTS, b"20.00%;9.00%;0.00%")
        table = decode_response(CommandCode.GET_TAX_PERCENTS, frame)
        assert table.values == (20.0, 9.0, 0.0)

    def test_decimal_point(self):
        """Test the decimal point digit."""
        assert decode_response(CommandCode.GET_DECIMAL_POINT, data_frame(CommandCode.GET_DECIMAL_POINT, b"2")) == 2
        with pytest.raises(ResponseDecodeError):
            decode_response(CommandCode.GET_DECIMAL_POINT, data_frame(CommandCode.GET_DECIMAL_POINT, b"x"))

    def test_parameters(self):
        """Test the parameter flags."""
        frame = data_frame(CommandCode.GET_PARAMETERS, b"0001;1;0;1;0")
        params = decode_response(CommandCode.GET_PARAMETERS, frame)
        assert params.pos_number == 1
        assert params.print_logo is True
        assert params.auto_open_till is False
        assert params.auto_cut is True

    def test_parameters_out_of_range(self):
        """Test model validation failures become decode errors."""
        frame = data_frame(CommandCode.GET_PARAMETERS, b"99999;1;0;1;0")
        with pytest.raises(ResponseDecodeError):
            decode_response(CommandCode.GET_PARAMETERS, frame)

    def test_date_time(self):
        """Test the clock response."""
        frame = data_frame(CommandCode.GET_DATE_TIME, b"15-01-2024 10:30")
        assert decode_response(CommandCode.GET_DATE_TIME, frame) == datetime(2024, 1, 15, 10, 30)

    def test_header_line(self):
        """Test the line number is dropped."""
        frame = data_frame(CommandCode.GET_HEADER_LINE, b"1;  SHOP NAME  ")
        assert decode_response(CommandCode.GET_HEADER_LINE, frame) == "  SHOP NAME  "

    def test_operator(self):
        """Test operator name and password."""
        frame = data_frame(CommandCode.GET_OPERATOR, b"3;Ivan                ;1234")
        operator = decode_response(CommandCode.GET_OPERATOR, frame)
        assert operator.number == 3
        assert operator.name == "Ivan"
        assert operator.password == "1234"

    def test_article(self):
        """Test an article whose name contains a separator."""
        payload = "00007;Bread; white        ;1.20;Б;12.00;10.000;3;15-01-2024 10:30".encode("cp1251")
        article = decode_response(CommandCode.GET_ARTICLE, data_frame(CommandCode.GET_ARTICLE, payload))
        assert isinstance(article, ArticleRecord)
        assert article.number == 7
        assert article.name == "Bread; white"
        assert article.price == 1.2
        assert article.tax_group == "Б"
        assert article.sales == 10.0
        assert article.report_counter == 3
        assert article.report_date_time == datetime(2024, 1, 15, 10, 30)

    def test_article_missing_field(self):
        """Test an article with a missing sub-field."""
        payload = b"00007;Bread               ;1.20;B;12.00;10.000;3"
        with pytest.raises(ResponseDecodeError):
            decode_response(CommandCode.GET_ARTICLE, data_frame(CommandCode.GET_ARTICLE, payload))

    def test_receipt_info(self):
        """Test receipt information with tax sums."""
        frame = data_frame(CommandCode.GET_RECEIPT_INFO, b"1;2;5.88;0.00;0.98;0.00")
        info = decode_response(CommandCode.GET_RECEIPT_INFO, frame)
        assert isinstance(info, ReceiptInfo)
        assert info.is_open is True
        assert info.item_count == 2
        assert info.total == 5.88
        assert info.tax_sums == (0.98, 0.0)

    def test_receipt_info_too_short(self):
        """Test receipt information missing fields."""
        frame = data_frame(CommandCode.GET_RECEIPT_INFO, b"1;2;5.88")
        with pytest.raises(ResponseDecodeError):
            decode_response(CommandCode.GET_RECEIPT_INFO, frame)

    def test_intermediate_sum(self):
        """Test the subtotal value."""
        frame = data_frame(CommandCode.INTERMEDIATE_SUM, b"5.88")
        assert decode_response(CommandCode.INTERMEDIATE_SUM, frame) == 5.88

    def test_free_fiscal_space(self):
        """Test the free block count."""
        frame = data_frame(CommandCode.GET_FREE_FISCAL_SPACE, b"1820")
        assert decode_response(CommandCode.GET_FREE_FISCAL_SPACE, frame) == 1820


class TestRegistry:
    """Tests for ResponseDecoderRegistry."""

    def test_ack_only_command(self):
        """Test commands without a decoder decode to None."""
        _, ack = parse_frame(build_ack_frame(0x21))
        assert decode_response(CommandCode.PAPER_CUT, ack) is None

    def test_ack_for_data_command(self):
        """Test an acknowledgement where data was expected."""
        _, ack = parse_frame(build_ack_frame(0x21))
        with pytest.raises(ResponseDecodeError):
            decode_response(CommandCode.GET_VERSION, ack)

    def test_custom_decoder(self):
        """Test decorator registration and replacement."""
        registry = ResponseDecoderRegistry()

        @registry.decoder(CommandCode.GET_VERSION)
        def decode_version(reader):
            return reader.text.lower()

        assert registry.has_decoder(CommandCode.GET_VERSION)
        assert registry.registered_commands == [CommandCode.GET_VERSION]
        frame = data_frame(CommandCode.GET_VERSION, b"ZFP")
        assert registry.decode(CommandCode.GET_VERSION, frame) == "zfp"

    def test_default_registry_covers_queries(self):
        """Test every information command has a decoder."""
        registry = create_default_registry()
        for command in (
            CommandCode.GET_STATUS,
            CommandCode.GET_FISCAL_IDENTITY,
            CommandCode.GET_ARTICLE,
            CommandCode.GET_RECEIPT_INFO,
            CommandCode.GET_DAILY_SUMS,
        ):
            assert registry.has_decoder(command)
        assert not registry.has_decoder(CommandCode.PAYMENT)
