"""
Pytest configuration and fixtures for M-Pesa processor tests.
"""

import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

sys.path.insert(0, str(PROJECT_ROOT / "python"))

from mpesa_processor.models import Frequency, RecurringObligation, StoredTransaction


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def config_dir() -> Path:
    """Return the config directory path."""
    return PROJECT_ROOT / "config"


@pytest.fixture
def reference_time() -> datetime:
    """Fixed 'now' for due-date calculations."""
    return datetime(2024, 2, 2, 12, 0)


@pytest.fixture
def sent_message() -> str:
    """A typical money transfer confirmation."""
    return (
        "QGH7XK2M1P Confirmed. Ksh1,500.00 sent to JANE WANJIKU 0712345678 "
        "on 5/3/24 at 2:15 PM. New M-PESA balance is Ksh3,250.50. "
        "Transaction cost, Ksh23.00."
    )


@pytest.fixture
def sample_messages(sent_message: str) -> list[str]:
    """A mix of parseable and unparseable messages."""
    return [
        sent_message,
        "Your data bundle is ready. Dial *544# to check balance",
        "QFT1AB2CD3 Confirmed.You have received Ksh2,000.00 from PETER OTIENO "
        "0722000111 on 12/2/24 at 9:05 AM  New M-PESA balance is Ksh5,000.00.",
    ]


@pytest.fixture
def sample_statement() -> str:
    """Two pages of statement text with headers, a charge row and a failed row."""
    return "\n".join([
        "Receipt No. Completion Time Details Transaction Status Paid In Withdrawn Balance",
        "RBK1A2B3C4 2024-01-15 10:30:00 Customer Transfer to 0712345678 - JOHN DOE Completed -500.00 1,000.00",
        "RBK1A2B3C5 2024-01-15 10:30:00 Customer Transfer of Funds Charge Completed -7.00 993.00",
        "Page 1 of 2",
        "Receipt No. Completion Time Details Transaction Status Paid In Withdrawn Balance",
        "RBK1A2B3C6 2024-01-16 09:00:00 Funds received from 0722000111 - JANE ROE Completed 2,000.00 0.00 2,993.00",
        "RBK1A2B3C7 2024-01-17 12:00:00 Pay Bill to 888880 - KPLC PREPAID Acc. 12345 Failed -1,000.00 2,993.00",
        "Page 2 of 2",
    ])


@pytest.fixture
def stored_transactions() -> list[StoredTransaction]:
    """Previously saved transactions."""
    return [
        StoredTransaction(
            id="txn-1",
            amount=Decimal("500.50"),
            recipient="JOHN DOE",
            timestamp=datetime(2024, 1, 16, 9, 0),
            category="Family",
        ),
        StoredTransaction(
            id="txn-2",
            amount=Decimal("500.00"),
            recipient="Someone Else",
            timestamp=datetime(2024, 1, 15, 11, 0),
            mpesa_reference="abc123",
        ),
    ]


@pytest.fixture
def netflix_obligation(reference_time: datetime) -> RecurringObligation:
    """Monthly subscription last paid 32 days before the reference time."""
    return RecurringObligation(
        id="rec-netflix",
        recipient="Netflix",
        amount=Decimal("1000"),
        category="Entertainment",
        last_paid_date=datetime(2024, 1, 1, 12, 0),
        frequency=Frequency.MONTHLY,
    )
