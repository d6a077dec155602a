from decimal import Decimal

import pytest

from hims_grn.models.grn import GRNStatus
from hims_grn.services.grn_errors import (
    GrnError,
    GrnNotFound,
    NotEditable,
    NotPersisted,
    ValidationFailed,
    VarianceUnexplained,
)
from hims_grn.services.grn_store import GrnStore
from hims_grn.services.grn_validation import BATCH_REQUIRED, INVOICE_REQUIRED, ITEM_MISSING, SUPPLIER_REQUIRED
from hims_grn.services.grn_workflow import GrnWorkflow, assert_transition, can_transition

from conftest import make_header, make_line, pack_line


@pytest.fixture
def store(db):
    return GrnStore(db)


@pytest.fixture
def wf(store):
    return GrnWorkflow(store, require_invoice_on_post=False)


def test_create_stores_canonical_units_and_numbers_the_draft(wf, db):
    ref = wf.create(make_header(), [pack_line(), make_line(batch_no="B-002")], created_by_id=3)
    db.commit()

    assert ref.id
    assert ref.status == GRNStatus.DRAFT
    assert ref.grn_number == "GRN202601150001"

    snap = wf.fetch(ref.id)
    assert snap.status == GRNStatus.DRAFT
    assert [ln.batch_no for ln in snap.lines] == ["B-001", "B-002"]
    first = snap.lines[0]
    assert first.quantity == Decimal("200")
    assert first.unit_cost == Decimal("0.5")
    # pack config is not stored
    assert first.packs == 0
    assert first.strips_per_pack == 0
    assert first.pack_cost == 0


def test_numbers_run_per_day(wf, db):
    a = wf.create(make_header(), [make_line()])
    b = wf.create(make_header(), [make_line()])
    c = wf.create(make_header(received_date=make_header().received_date.replace(day=16)), [make_line()])
    db.commit()
    assert (a.grn_number, b.grn_number, c.grn_number) == (
        "GRN202601150001",
        "GRN202601150002",
        "GRN202601160001",
    )


def test_stored_totals(wf, store, db):
    ref = wf.create(
        make_header(freight_amount=Decimal("5")),
        [pack_line(discount_percent=10, tax_percent=12)],
    )
    db.commit()

    grn = store.get(ref.id)
    assert grn.sub_total == Decimal("100.00")
    assert grn.discount_amount == Decimal("10.00")
    assert grn.taxable_amount == Decimal("90.00")
    assert grn.tax_amount == Decimal("10.80")
    assert grn.calculated_grn_amount == Decimal("105.80")
    assert grn.items[0].line_total == Decimal("100.80")
    assert grn.items[0].line_no == 1


def test_create_rejects_with_every_issue(wf, db):
    with pytest.raises(ValidationFailed) as exc:
        wf.create(make_header(supplier_id=None), [make_line(item_id=None, batch_no="")])

    codes = [i.code for i in exc.value.issues]
    assert codes == [SUPPLIER_REQUIRED, ITEM_MISSING, BATCH_REQUIRED]
    assert str(exc.value) == "Select supplier (+2 more)"
    assert not isinstance(exc.value, VarianceUnexplained)


def test_unexplained_variance_has_its_own_error(wf):
    with pytest.raises(VarianceUnexplained):
        wf.create(make_header(supplier_invoice_amount=Decimal("150")), [make_line()])


def test_mismatch_with_reason_saves(wf, store, db):
    ref = wf.create(
        make_header(supplier_invoice_amount=Decimal("150"), difference_reason="Scheme credit pending"),
        [make_line()],
    )
    db.commit()
    grn = store.get(ref.id)
    assert grn.amount_difference == Decimal("50.00")
    assert grn.difference_reason == "Scheme credit pending"


def test_update_replaces_lines(wf, db):
    ref = wf.create(make_header(), [make_line(), make_line(batch_no="B-002")])
    db.commit()

    wf.update(ref.id, make_header(notes="recounted"), [make_line(batch_no="B-009", quantity=4)])
    db.commit()

    snap = wf.fetch(ref.id)
    assert snap.header.notes == "recounted"
    assert [(ln.batch_no, ln.quantity) for ln in snap.lines] == [("B-009", Decimal("4"))]


def test_post_requires_a_saved_draft(wf):
    with pytest.raises(NotPersisted):
        wf.post(None)
    with pytest.raises(GrnNotFound):
        wf.post(999)


def test_post_is_gated_on_difference_reason(wf, store, db):
    ref = wf.create(make_header(), [make_line()])
    db.commit()

    # supplier invoice amount corrected on the stored draft afterwards
    grn = store.get(ref.id)
    grn.supplier_invoice_amount = Decimal("150")
    db.flush()

    with pytest.raises(VarianceUnexplained):
        wf.post(ref.id)
    assert store.get(ref.id).status == GRNStatus.DRAFT

    posted = wf.post(ref.id, difference_reason="Supplier added handling charges", posted_by_id=8)
    db.commit()

    grn = store.get(ref.id)
    assert posted.status == GRNStatus.POSTED
    assert grn.status == GRNStatus.POSTED
    assert grn.difference_reason == "Supplier added handling charges"
    assert grn.posted_by_id == 8
    assert grn.posted_at is not None


def test_posted_grn_is_frozen(wf, db):
    ref = wf.create(make_header(), [make_line()])
    wf.post(ref.id)
    db.commit()
    before = wf.fetch(ref.id)

    with pytest.raises(NotEditable) as exc:
        wf.update(ref.id, make_header(notes="late edit"), [make_line(quantity=99)])
    assert "current status: POSTED" in str(exc.value)
    db.rollback()

    assert wf.fetch(ref.id) == before

    with pytest.raises(NotEditable):
        wf.post(ref.id)


def test_cancel_only_from_draft(wf, store, db):
    ref = wf.create(make_header(), [make_line()])
    db.commit()

    with pytest.raises(GrnError):
        store.cancel(ref.id, "  ")

    grn = store.cancel(ref.id, "Wrong supplier selected", cancelled_by_id=4)
    db.commit()
    assert grn.status == GRNStatus.CANCELLED
    assert grn.cancel_reason == "Wrong supplier selected"

    with pytest.raises(NotEditable):
        wf.update(ref.id, make_header(), [make_line()])
    with pytest.raises(NotEditable):
        wf.post(ref.id)
    with pytest.raises(NotEditable):
        store.cancel(ref.id, "again")


def test_invoice_number_required_on_post_when_configured(store, db):
    wf = GrnWorkflow(store, require_invoice_on_post=True)
    ref = wf.create(make_header(invoice_number=""), [make_line()])
    db.commit()

    with pytest.raises(ValidationFailed) as exc:
        wf.post(ref.id)
    assert [i.code for i in exc.value.issues] == [INVOICE_REQUIRED]


def test_list_filters(wf, store, db):
    a = wf.create(make_header(invoice_number="INV-A"), [make_line()])
    b = wf.create(make_header(invoice_number="INV-B"), [make_line()])
    wf.post(b.id)
    db.commit()

    assert [g.id for g in store.list()] == [b.id, a.id]
    assert [g.id for g in store.list(status="POSTED")] == [b.id]
    assert [g.id for g in store.list(status="ALL")] == [b.id, a.id]
    assert [g.id for g in store.list(q="inv-a")] == [a.id]


def test_transition_table():
    assert can_transition(GRNStatus.DRAFT, GRNStatus.POSTED)
    assert can_transition(GRNStatus.DRAFT, GRNStatus.DRAFT)
    assert can_transition("DRAFT", "CANCELLED")
    assert not can_transition(GRNStatus.POSTED, GRNStatus.DRAFT)
    assert not can_transition(GRNStatus.POSTED, GRNStatus.CANCELLED)
    assert not can_transition(GRNStatus.CANCELLED, GRNStatus.DRAFT)


def test_three_decimal_invoice_gives_the_same_answer_on_save_and_post(wf, store, db):
    # 100.004 rounds to the calculated 100.00: accepted on save and on post
    ref = wf.create(make_header(supplier_invoice_amount=Decimal("100.004")), [make_line()])
    db.commit()
    assert store.get(ref.id).supplier_invoice_amount == Decimal("100.00")
    assert wf.post(ref.id).status == GRNStatus.POSTED
    db.commit()

    # 100.005 rounds to 100.01: needs a reason already at save time
    with pytest.raises(VarianceUnexplained):
        wf.create(make_header(supplier_invoice_amount=Decimal("100.005")), [make_line()])

    ref = wf.create(
        make_header(supplier_invoice_amount=Decimal("100.005"), difference_reason="Paisa rounding on invoice"),
        [make_line()],
    )
    db.commit()
    grn = store.get(ref.id)
    assert grn.amount_difference == Decimal("0.01")
    assert wf.post(ref.id).status == GRNStatus.POSTED


def test_guards_read_the_transition_table():
    assert_transition(GRNStatus.DRAFT, GRNStatus.POSTED, "posted")
    with pytest.raises(NotEditable) as exc:
        assert_transition(GRNStatus.CANCELLED, GRNStatus.POSTED, "posted")
    assert str(exc.value) == "Only DRAFT GRN can be posted (current status: CANCELLED)"
