from decimal import Decimal

from hims_grn.services.grn_math import D, fmt_money, money2, pct_of, to_int, unit6


def test_lenient_coercion_never_raises():
    assert D(None) == 0
    assert D("") == 0
    assert D("   ") == 0
    assert D("abc") == 0
    assert D("NaN") == 0
    assert D("Infinity") == 0
    assert D(float("nan")) == 0
    assert D(True) == 0
    assert D(" 12.5 ") == Decimal("12.5")
    assert D(7) == Decimal("7")
    assert D(0.1) == Decimal("0.1")


def test_thousands_separator_is_not_a_number():
    assert D("1,234") == 0


def test_money2_rounds_half_up():
    assert money2("0.125") == Decimal("0.13")
    assert money2("2.675") == Decimal("2.68")
    assert money2("-0.125") == Decimal("-0.13")
    assert money2("abc") == Decimal("0.00")


def test_unit6_keeps_rate_precision():
    assert unit6(Decimal("100") / Decimal("3")) == Decimal("33.333333")
    assert unit6("0.0000005") == Decimal("0.000001")


def test_pct_of():
    assert pct_of(90, 12) == Decimal("10.8")
    assert pct_of("", 12) == 0


def test_fmt_money():
    assert fmt_money("100.8") == "100.80"
    assert fmt_money(1234.5, symbol="₹") == "₹1,234.50"
    assert fmt_money(None) == "0.00"


def test_to_int_truncates_and_clamps():
    assert to_int("2.9") == 2
    assert to_int(-3) == 0
    assert to_int("x") == 0
    assert to_int(10) == 10
