import pytest

from novelstats.formatting import format_date_short, format_delta, format_percent, format_views


@pytest.mark.parametrize("v, expected", [
    (None, "-"),
    (0, "0"),
    (3500, "3,500"),
    (143_000, "14.3만"),
    (120_000_000, "1.2억"),
])
def test_format_views(v, expected):
    assert format_views(v) == expected


def test_format_delta_keeps_sign():
    assert format_delta(20_000) == "+2.0만"
    assert format_delta(-500) == "-500"
    assert format_delta(0) == "+0"


def test_format_percent():
    assert format_percent(66.66) == "66.7%"
    assert format_percent(5, decimals=0) == "5%"


def test_format_date_short():
    assert format_date_short("2024-03-09") == "03.09"
    assert format_date_short("") == ""
    assert format_date_short("soon") == "soon"
