"""Shared fixtures: settings that never touch the environment, and fakes."""

from datetime import date

import pytest

from smartspend.config import AppSettings, GeminiSettings, RetrySettings
from smartspend.models.ledger import Transaction

from helpers.fake_backend import RecordingSleep


@pytest.fixture
def gemini_settings():
    return GeminiSettings(api_key="test-key", model_name="gemini-test")


@pytest.fixture
def retry_settings():
    return RetrySettings(max_attempts=3, initial_delay_seconds=0.5)


@pytest.fixture
def app_settings():
    return AppSettings(
        default_currency="USD",
        prompt_transaction_limit=500,
        max_transaction_amount=1_000_000_000.0,
        future_date_tolerance_days=7,
    )


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def sample_transactions():
    return [
        Transaction(id="t1", category="Food", amount=100.0, description="Lunch", date=date(2024, 3, 1)),
        Transaction(id="t2", category="Rent", amount=1200.0, description="March rent", date=date(2024, 3, 2)),
        Transaction(id="t3", category="Transport", amount=35.5, description="Metro card", date=date(2024, 3, 4)),
    ]
