"""Pytest configuration for DebtChat tests."""

import pytest


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset global settings after each test to ensure test isolation."""
    yield
    # After each test, reload settings to reset to defaults
    from debtchat.config import reload_settings

    reload_settings()


@pytest.fixture
def debt_payload():
    """A Debt to the Penny response body with two records."""
    return {
        "data": [
            {
                "record_date": "2024-12-31",
                "tot_pub_debt_out_amt": "36218605311689.45",
                "debt_held_public_amt": "28832894430542.57",
                "intragov_hold_amt": "7385710881146.88",
            },
            {
                "record_date": "2024-12-30",
                "tot_pub_debt_out_amt": "36213453768453.83",
                "debt_held_public_amt": "28823742339402.18",
                "intragov_hold_amt": "7389711429051.65",
            },
        ],
        "meta": {"count": 2, "total-count": 7900, "total-pages": 3950},
    }
