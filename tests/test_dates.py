"""Tests for date parsing."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from teambooks.domain.dates import parse_date
from teambooks.errors import BadInputError


def test_parse_iso_string():
    assert parse_date(" 2024-02-29 ") == date(2024, 2, 29)


def test_dates_and_datetimes_pass_through():
    assert parse_date(date(2024, 1, 1)) == date(2024, 1, 1)
    assert parse_date(datetime(2024, 1, 1, 23, 59)) == date(2024, 1, 1)


@pytest.mark.parametrize("value", ["2023-02-29", "2024/01/01", "", None, 20240101])
def test_invalid_values(value):
    with pytest.raises(BadInputError):
        parse_date(value, "as_of")


def test_bad_input_is_a_value_error():
    with pytest.raises(ValueError, match="as_of"):
        parse_date("nope", "as_of")
