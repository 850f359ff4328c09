"""Tests for receipt validation rules."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from extraction import ExtractedReceipt, ExtractionEngine, LineItem
from recognition import RecognitionResult
from validation import ReceiptValidator, Severity, ValidationConfig

TODAY = date(2024, 3, 20)


def _validator(**kwargs) -> ReceiptValidator:
    return ReceiptValidator(ValidationConfig(**kwargs), today=lambda: TODAY)


def _receipt(**overrides) -> ExtractedReceipt:
    base = dict(
        merchant_name="CORNER CAFE",
        date=TODAY,
        subtotal=Decimal("38.00"),
        tax=Decimal("4.50"),
        total=Decimal("42.50"),
        confidence=0.9,
    )
    base.update(overrides)
    return ExtractedReceipt(**base)


def test_clean_receipt_is_valid():
    res = _validator().validate(_receipt())
    assert res.is_valid
    assert res.errors == []
    assert res.warnings == []
    assert res.confidence == pytest.approx(0.9)


def test_scenario_extracted_subtotal_tax_total_reconcile():
    blocks = [
        ["CORNER CAFE"],
        ["Date: 03/18/2024"],
        ["SUBTOTAL: 38.00"],
        ["TAX: 4.50"],
        ["TOTAL: 42.50"],
    ]
    receipt = ExtractionEngine().extract(RecognitionResult.from_text_blocks(blocks))
    assert receipt.subtotal == Decimal("38.00")
    assert receipt.tax == Decimal("4.50")
    assert receipt.total == Decimal("42.50")

    res = _validator().validate(receipt)
    assert res.warnings_for("total") == []


def test_exact_sum_never_warns():
    for sub, tax in [("0.01", "0.00"), ("99.99", "8.25"), ("1234.56", "0.44")]:
        total = Decimal(sub) + Decimal(tax)
        res = _validator().validate(_receipt(subtotal=Decimal(sub), tax=Decimal(tax), total=total))
        assert res.warnings_for("total") == []


def test_scenario_total_mismatch_warns_once():
    res = _validator().validate(_receipt(
        subtotal=Decimal("5.00"), tax=Decimal("1.00"), total=Decimal("10.00"),
    ))
    assert len(res.warnings_for("total")) == 1
    assert "4.00" in res.warnings_for("total")[0].message
    assert res.is_valid


def test_tip_and_discount_enter_the_reconciliation():
    res = _validator().validate(_receipt(
        subtotal=Decimal("20.00"), tax=Decimal("2.00"), tip=Decimal("4.00"),
        discount=Decimal("1.00"), total=Decimal("25.00"),
    ))
    assert res.warnings_for("total") == []


def test_mismatch_within_tolerance_is_ok():
    res = _validator().validate(_receipt(total=Decimal("43.00")))
    assert res.warnings_for("total") == []


def test_scenario_future_date_is_high_error():
    ok = _validator().validate(_receipt())
    res = _validator().validate(_receipt(date=TODAY + timedelta(days=1)))
    [err] = res.errors_for("date")
    assert err.severity is Severity.HIGH
    assert not res.is_valid
    assert ok.confidence - res.confidence >= 0.1 - 1e-9


def test_old_date_warns():
    res = _validator().validate(_receipt(date=TODAY - timedelta(days=400)))
    assert res.is_valid
    assert len(res.warnings_for("date")) == 1


def test_missing_date_is_high_error():
    res = _validator().validate(_receipt(date=None))
    assert res.errors_for("date")[0].severity is Severity.HIGH


@pytest.mark.parametrize("total", [None, Decimal("0.00"), Decimal("-3.00")])
def test_total_must_be_positive(total):
    res = _validator().validate(_receipt(total=total, subtotal=None, tax=None))
    [err] = res.errors_for("total")
    assert err.severity is Severity.HIGH


def test_blank_merchant_is_medium_error():
    res = _validator().validate(_receipt(merchant_name="   "))
    assert res.errors_for("merchant_name")[0].severity is Severity.MEDIUM


def test_negative_tax_is_error():
    res = _validator().validate(_receipt(tax=Decimal("-1.00"), total=Decimal("37.00")))
    assert res.errors_for("tax")[0].severity is Severity.MEDIUM


def test_line_items_must_sum_to_subtotal():
    items = [LineItem("Coffee", Decimal("7.00")), LineItem("Bagel", Decimal("2.50"))]
    res = _validator().validate(_receipt(line_items=items))
    assert len(res.warnings_for("line_items")) == 1

    items.append(LineItem("Lunch", Decimal("28.50")))
    res = _validator().validate(_receipt(line_items=items))
    assert res.warnings_for("line_items") == []


def test_quantity_times_unit_price_soft_check():
    item = LineItem("Coffee", Decimal("8.00"), quantity=Decimal("2"), unit_price=Decimal("3.50"))
    res = _validator().validate(_receipt(line_items=[item], subtotal=None))
    assert len(res.warnings_for("line_items[0]")) == 1
    assert res.is_valid


def test_confidence_is_clamped_at_zero():
    res = _validator().validate(ExtractedReceipt(confidence=0.05))
    assert len(res.errors) >= 3
    assert res.confidence == 0.0


def test_config_from_dict_parses_decimals():
    cfg = ValidationConfig.from_dict({"total_tolerance": 0.25, "max_age_days": 30})
    assert cfg.total_tolerance == Decimal("0.25")
    assert cfg.max_age_days == 30


def test_validation_result_round_trip():
    res = _validator().validate(_receipt(date=None, total=Decimal("10.00")))
    from validation import ValidationResult
    assert ValidationResult.from_dict(res.to_dict()) == res
