"""
M-Pesa Parser Tests

Tests for SMS message parsing, amount and date extraction,
and full statement parsing.
"""

import pytest
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "python"))

from mpesa_processor.parsers import (
    MessageParser,
    ParseError,
    ParsedTransaction,
    StatementParser,
    TransactionType,
    extract_payment_details,
)
from mpesa_processor.parsers.base import (
    clean_counterparty,
    extract_reference,
    parse_amount,
    parse_timestamp,
)


class TestParsedTransaction:
    """Tests for ParsedTransaction dataclass."""

    def test_default_values(self):
        txn = ParsedTransaction(amount=Decimal("100"))

        assert txn.recipient is None
        assert txn.transaction_type is None
        assert txn.reference is None
        assert txn.balance is None
        assert txn.timestamp is None
        assert txn.raw_message == ""

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            ParsedTransaction(amount=Decimal("-1"))

    def test_to_dict(self):
        txn = ParsedTransaction(
            amount=Decimal("500.00"),
            recipient="John Doe",
            transaction_type=TransactionType.SEND,
            timestamp=datetime(2024, 1, 15, 10, 30),
        )

        data = txn.to_dict()

        assert data["amount"] == 500.0
        assert data["transaction_type"] == "send"
        assert data["timestamp"] == "2024-01-15T10:30:00"
        assert data["balance"] is None


class TestAmountParsing:
    """Tests for amount and field helpers."""

    @pytest.mark.parametrize("text,expected", [
        ("1,234.56", Decimal("1234.56")),
        ("500", Decimal("500")),
        ("1000.00", Decimal("1000.00")),
        ("Ksh 2,500", Decimal("2500")),
        ("KES1,000,000.50", Decimal("1000000.50")),
    ])
    def test_parse_amount(self, text, expected):
        assert parse_amount(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", "abc", None])
    def test_parse_amount_invalid(self, text):
        assert parse_amount(text) is None

    def test_parse_timestamp_12_hour(self):
        assert parse_timestamp("15/01/24", "10:30 PM") == datetime(2024, 1, 15, 22, 30)

    def test_parse_timestamp_without_space_before_meridiem(self):
        assert parse_timestamp("5/3/24", "9:05AM") == datetime(2024, 3, 5, 9, 5)

    def test_parse_timestamp_date_only(self):
        assert parse_timestamp("15/01/2024") == datetime(2024, 1, 15)

    def test_parse_timestamp_invalid(self):
        assert parse_timestamp("not a date") is None

    def test_extract_reference_at_start(self):
        assert extract_reference("QGH7XK2M1P Confirmed. Ksh100.00 sent") == "QGH7XK2M1P"

    def test_extract_reference_requires_letters_and_digits(self):
        assert extract_reference("ABCDEFGHIJ Confirmed. Ksh100.00 sent") is None

    def test_clean_counterparty(self):
        assert clean_counterparty("  NAIVAS   SUPERMARKET. ") == "NAIVAS SUPERMARKET"
        assert clean_counterparty(" . ") is None

    def test_extract_payment_details(self):
        details = extract_payment_details("Ksh2,000.00 paid to Paybill 888880 account 12345ABC")

        assert details.paybill == "888880"
        assert details.account == "12345abc"
        assert details.till is None

    def test_extract_till_number(self):
        details = extract_payment_details("Ksh350.00 paid to NAIVAS. Till 123456")

        assert details.till == "123456"
        assert details.paybill is None


class TestMessageParser:
    """Tests for M-Pesa SMS parsing."""

    @pytest.fixture
    def parser(self):
        return MessageParser()

    def test_parse_sent_message(self, parser):
        message = (
            "You sent Ksh 500.00 to John Doe on 15/01/24 at 10:30 AM. "
            "New M-PESA balance is Ksh 1,000.00"
        )

        txn = parser.parse(message)

        assert txn.amount == Decimal("500.00")
        assert txn.recipient == "John Doe"
        assert txn.balance == Decimal("1000.00")
        assert txn.transaction_type == TransactionType.SEND
        assert txn.timestamp == datetime(2024, 1, 15, 10, 30)
        assert txn.reference is None
        assert txn.raw_message == message

    def test_parse_confirmed_transfer(self, parser, sent_message):
        txn = parser.parse(sent_message)

        assert txn.amount == Decimal("1500.00")
        assert txn.recipient == "JANE WANJIKU 0712345678"
        assert txn.reference == "QGH7XK2M1P"
        assert txn.balance == Decimal("3250.50")
        assert txn.timestamp == datetime(2024, 3, 5, 14, 15)
        assert txn.transaction_type == TransactionType.SEND

    def test_parse_received(self, parser, sample_messages):
        txn = parser.parse(sample_messages[2])

        assert txn.transaction_type == TransactionType.RECEIVE
        assert txn.amount == Decimal("2000.00")
        assert txn.recipient == "PETER OTIENO 0722000111"
        assert txn.timestamp == datetime(2024, 2, 12, 9, 5)
        assert txn.balance == Decimal("5000.00")

    def test_parse_till_payment(self, parser):
        txn = parser.parse(
            "QAB1CD2EF3 Confirmed. Ksh350.00 paid to NAIVAS SUPERMARKET. "
            "on 1/4/24 at 6:45 PM.New M-PESA balance is Ksh1,200.00."
        )

        assert txn.transaction_type == TransactionType.BUY
        assert txn.recipient == "NAIVAS SUPERMARKET"
        assert txn.amount == Decimal("350.00")
        assert txn.timestamp == datetime(2024, 4, 1, 18, 45)

    def test_parse_buy_goods(self, parser):
        txn = parser.parse("You bought goods worth Ksh 1,250.00 from JAVA HOUSE on 2/2/24 at 1:00 PM")

        assert txn.transaction_type == TransactionType.BUY
        assert txn.recipient == "JAVA HOUSE"
        assert txn.amount == Decimal("1250.00")

    def test_parse_agent_withdrawal(self, parser):
        txn = parser.parse(
            "QWE1RT2YU3 Confirmed.on 3/3/24 at 11:00 AMWithdraw Ksh2,000.00 from "
            "123456 - ABC AGENCIES Kenyatta Ave New M-PESA balance is Ksh500.00."
        )

        assert txn.transaction_type == TransactionType.WITHDRAW
        assert txn.recipient == "ABC AGENCIES Kenyatta Ave"
        assert txn.amount == Decimal("2000.00")
        assert txn.timestamp == datetime(2024, 3, 3, 11, 0)

    def test_parse_paybill_with_account(self, parser):
        txn = parser.parse(
            "QPB1PB2PB3 Confirmed. Ksh1,200.00 sent to KPLC PREPAID for account 54321678 "
            "on 10/1/24 at 8:00 AM New M-PESA balance is Ksh800.00."
        )

        assert txn.recipient == "KPLC PREPAID"
        assert txn.transaction_type == TransactionType.SEND
        assert txn.balance == Decimal("800.00")

    def test_recipient_with_initials_and_title(self, parser):
        txn = parser.parse(
            "QGH7XK2M1P Confirmed. Ksh500.00 sent to Mr. J. Kamau 0712345678 "
            "on 5/3/24 at 2:15 PM. New M-PESA balance is Ksh1,000.00."
        )

        assert txn.recipient == "Mr. J. Kamau 0712345678"
        assert txn.timestamp == datetime(2024, 3, 5, 14, 15)

    def test_sentence_end_still_ends_recipient(self, parser):
        txn = parser.parse("Ksh250.00 sent to JOHN DOE. Transaction cost, Ksh0.00.")

        assert txn.recipient == "JOHN DOE"

    def test_unrecognized_message_keeps_amount(self, parser):
        message = "Your account was credited with KES 750 today"

        txn = parser.parse(message)

        assert txn.amount == Decimal("750")
        assert txn.recipient is None
        assert txn.transaction_type is None
        assert txn.timestamp is None
        assert txn.raw_message == message

    @pytest.mark.parametrize("message", [
        "",
        "Your data bundle is ready. Dial *544# to check balance",
        "You sent money to John on 15/01/24",
    ])
    def test_parse_error_without_amount(self, parser, message):
        with pytest.raises(ParseError):
            parser.parse(message)

    def test_parse_error_is_value_error(self, parser):
        with pytest.raises(ValueError):
            parser.parse("no money here")

    def test_parse_is_idempotent(self, parser, sent_message):
        assert parser.parse(sent_message) == parser.parse(sent_message)

    def test_parse_batch_collects_failures(self, parser, sample_messages):
        result = parser.parse_batch(sample_messages)

        assert result.success_count == 2
        assert result.failure_count == 1
        index, message, error = result.failures[0]
        assert index == 1
        assert message == sample_messages[1]
        assert "amount" in error
        assert [t.amount for t in result.transactions] == [Decimal("1500.00"), Decimal("2000.00")]

    def test_split_messages_on_confirmation_codes(self, parser):
        text = (
            "QGH7XK2M1P Confirmed. Ksh100.00 sent to ANN on 1/1/24 at 1:00 PM.\n"
            "QGH7XK2M2P Confirmed. Ksh200.00 sent to BEN on 2/1/24 at 1:00 PM."
        )

        parts = parser.split_messages(text)

        assert len(parts) == 2
        assert parts[1].startswith("QGH7XK2M2P")

    def test_parse_text_blank_line_separated(self, parser, sent_message, sample_messages):
        result = parser.parse_text(f"{sent_message}\n\n{sample_messages[2]}")

        assert result.success_count == 2
        assert result.transactions[1].transaction_type == TransactionType.RECEIVE


class TestStatementParser:
    """Tests for M-Pesa statement parsing."""

    @pytest.fixture
    def parser(self):
        return StatementParser()

    def test_parse_rows(self, parser, sample_statement):
        transactions = parser.parse(sample_statement)

        assert len(transactions) == 2

        sent, received = transactions
        assert sent.reference == "RBK1A2B3C4"
        assert sent.recipient == "JOHN DOE"
        assert sent.amount == Decimal("500.00")
        assert sent.transaction_type == TransactionType.SEND
        assert sent.balance == Decimal("1000.00")
        assert sent.timestamp == datetime(2024, 1, 15, 10, 30)

        assert received.recipient == "JANE ROE"
        assert received.amount == Decimal("2000.00")
        assert received.transaction_type == TransactionType.RECEIVE

    def test_charges_and_failed_rows_skipped(self, parser, sample_statement):
        result = parser.parse_content(sample_statement)

        assert result.skipped_segments == 2
        assert all("Charge" not in t.raw_message for t in result.transactions)

    def test_include_failed_rows(self, sample_statement):
        transactions = StatementParser(include_failed=True).parse(sample_statement)

        assert len(transactions) == 3
        failed = transactions[2]
        assert failed.recipient == "KPLC PREPAID"
        assert failed.amount == Decimal("1000.00")
        assert failed.transaction_type == TransactionType.SEND

    def test_summary(self, parser, sample_statement):
        result = parser.parse_content(sample_statement)

        assert result.summary["total_transactions"] == 2
        assert result.summary["total_paid_in"] == 2000.0
        assert result.summary["total_withdrawn"] == 500.0
        assert result.warnings == []

    def test_row_without_amounts_skipped(self, parser):
        statement = (
            "RBK1A2B3C8 2024-01-18 08:00:00 Customer Transfer to JOHN DOE Completed\n"
            "RBK1A2B3C9 2024-01-18 09:00:00 Customer Transfer to MARY JANE Completed -250.00 750.00"
        )

        result = parser.parse_content(statement)

        assert result.transaction_count == 1
        assert result.transactions[0].recipient == "MARY JANE"
        assert result.skipped_segments == 1

    def test_three_rows_and_one_without_amount(self, parser):
        statement = "\n".join([
            "RBK1A2B3E1 2024-02-01 08:00:00 Customer Transfer to ANN WAIRIMU Completed -100.00 900.00",
            "RBK1A2B3E2 2024-02-01 09:00:00 Funds received from BEN OTIENO Completed 300.00 1,200.00",
            "RBK1A2B3E3 2024-02-01 10:00:00 Customer Transfer to CARO AKINYI Completed",
            "RBK1A2B3E4 2024-02-01 11:00:00 Merchant Payment to 5544 - JAVA HOUSE Completed -200.00 1,000.00",
        ])

        transactions = parser.parse(statement)

        assert len(transactions) == 3
        assert [t.reference for t in transactions] == ["RBK1A2B3E1", "RBK1A2B3E2", "RBK1A2B3E4"]

    def test_repeated_rows_are_kept(self, parser):
        row = "RBK1A2B3D1 2024-01-18 09:00:00 Merchant Payment to 5544 - JAVA HOUSE Completed -450.00 550.00"

        transactions = parser.parse(f"{row}\n{row}")

        assert len(transactions) == 2
        assert transactions[0] == transactions[1]
        assert transactions[0].transaction_type == TransactionType.BUY
        assert transactions[0].recipient == "JAVA HOUSE"

    def test_unknown_details_use_sign(self, parser):
        transactions = parser.parse(
            "RBK1A2B3D2 2024-01-19 09:00:00 OD Loan Repayment to 232323 - M-PESA Overdraw "
            "Completed -120.00 430.00"
        )

        assert transactions[0].transaction_type == TransactionType.SEND
        assert transactions[0].amount == Decimal("120.00")

    def test_bom_and_crlf(self, parser):
        statement = (
            "\ufeffRBK1A2B3D3 2024-01-20 09:00:00 Deposit of Funds at Agent Till 4455 - "
            "CITY AGENT Completed 3,000.00 3,430.00\r\n"
        )

        transactions = parser.parse(statement)

        assert len(transactions) == 1
        assert transactions[0].transaction_type == TransactionType.DEPOSIT
        assert transactions[0].recipient == "CITY AGENT"

    def test_empty_statement(self, parser):
        result = parser.parse_content("")

        assert result.transactions == []
        assert result.warnings == ["No transactions found"]
        assert result.summary["total_transactions"] == 0
