from dataclasses import replace
from decimal import Decimal

from hims_grn.services.grn_lines import line_from_item, line_from_po_pending, remove_line, split_line
from hims_grn.services.grn_validation import BATCH_REQUIRED, PACK_INCOMPLETE, detect_line_issues

from conftest import make_line, pack_line


def test_po_pending_line_uses_remaining_qty_and_master_defaults():
    pending = {
        "po_item_id": 44,
        "item_id": 12,
        "remaining_qty": "30",
        "item": {"id": 12, "name": "Paracetamol 500", "default_price": "1.25", "default_mrp": "2", "default_tax_percent": 12},
    }
    line = line_from_po_pending(pending)

    assert line.item_id == 12
    assert line.po_item_id == 44
    assert line.item_name == "Paracetamol 500"
    assert line.quantity == Decimal("30")
    assert line.unit_cost == Decimal("1.25")
    assert line.mrp == Decimal("2")
    assert line.tax_percent == Decimal("12")
    assert line.packs == 0

    # only the batch is left for the user to fill in
    assert [i.code for i in detect_line_issues(line)] == [BATCH_REQUIRED]


def test_po_pending_line_prefers_po_rates_and_falls_back_to_pending_qty():
    pending = {
        "po_item_id": 45,
        "pending_qty": 8,
        "unit_cost": "3.10",
        "item": {"id": 13, "default_price": "9"},
    }
    line = line_from_po_pending(pending)
    assert line.item_id == 13
    assert line.quantity == Decimal("8")
    assert line.unit_cost == Decimal("3.10")
    assert line.item_name == "Item #13"


def test_item_master_line():
    line = line_from_item({"id": 9, "name": "Syrup 100ml", "default_price": 40, "default_mrp": 55})
    assert line.item_id == 9
    assert line.quantity == Decimal("1")
    assert line.unit_cost == Decimal("40")
    assert line.mrp == Decimal("55")
    assert line.batch_no == ""


def test_split_line_clones_pricing_for_a_second_batch():
    lines = [make_line(), pack_line(batch_no="B-777")]
    out = split_line(lines, 1)

    assert len(out) == 3
    assert out[1] == lines[1]
    clone = out[2]
    assert clone.item_id == lines[1].item_id
    assert clone.unit_cost == lines[1].unit_cost
    assert clone.batch_no == ""
    assert clone.quantity == 0
    assert clone.packs == 0
    assert clone.strips_per_pack == 0
    assert clone.units_per_strip == 0
    assert clone.pack_cost == 0
    # input sequence is left alone
    assert len(lines) == 2


def test_split_of_pack_line_is_a_plain_unit_line():
    clone = split_line([pack_line()], 0)[1]
    assert PACK_INCOMPLETE not in [i.code for i in detect_line_issues(clone)]

    filled = replace(clone, batch_no="B-778", quantity=Decimal("40"))
    assert detect_line_issues(filled) == []


def test_split_line_out_of_range_is_a_no_op():
    lines = [make_line()]
    assert split_line(lines, 3) == lines
    assert split_line(lines, -1) == lines


def test_remove_line():
    lines = [make_line(batch_no="A"), make_line(batch_no="B"), make_line(batch_no="C")]
    assert [ln.batch_no for ln in remove_line(lines, 1)] == ["A", "C"]
    assert remove_line(lines, 10) == lines
