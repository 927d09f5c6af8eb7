from datetime import date, datetime

import pytest

from formatting import format_date, format_quantity, money, safe_filename, to_date_safe, to_number


class TestMoney:
    def test_two_decimals_with_currency_suffix(self):
        assert money(30) == "30.00 Dt"
        assert money("12.5") == "12.50 Dt"

    def test_bad_values_render_as_zero(self):
        assert money(None) == "0.00 Dt"
        assert money("abc") == "0.00 Dt"
        assert money(float("nan")) == "0.00 Dt"

    def test_explicit_currency(self):
        assert money(1, currency="EUR") == "1.00 EUR"


class TestNumbers:
    @pytest.mark.parametrize("raw, expected", [(None, 0.0), ("", 0.0), ("  4 ", 4.0), ("x", 0.0), (3, 3.0)])
    def test_to_number(self, raw, expected):
        assert to_number(raw) == expected

    def test_quantity_drops_trailing_zeroes(self):
        assert format_quantity(3.0) == "3"
        assert format_quantity(2.5) == "2.5"


class TestDates:
    def test_accepts_common_shapes(self):
        assert to_date_safe(datetime(2024, 1, 2)) == datetime(2024, 1, 2)
        assert to_date_safe(date(2024, 1, 2)) == datetime(2024, 1, 2)
        assert to_date_safe("2024-01-02T10:00:00") == datetime(2024, 1, 2, 10, 0)
        assert to_date_safe("2024-01-02T10:00:00Z").year == 2024

    def test_epoch_milliseconds(self):
        assert to_date_safe(1704067200000) == to_date_safe(1704067200)

    def test_garbage_is_none(self):
        assert to_date_safe("not a date") is None
        assert to_date_safe(None) is None
        assert to_date_safe(True) is None

    def test_format_date(self):
        assert format_date(datetime(2024, 7, 1)) == "01/07/2024"
        assert format_date(None) == ""


class TestSafeFilename:
    def test_non_alphanumerics_become_hyphens(self):
        assert safe_filename("INV/2024#07") == "inv-2024-07"

    def test_keeps_hyphen_and_underscore(self):
        assert safe_filename("INV_2024-07") == "inv_2024-07"

    def test_runs_collapse(self):
        assert safe_filename("A  //  B") == "a-b"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_falls_back(self, raw):
        assert safe_filename(raw) == "invoice"
