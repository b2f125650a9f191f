from datetime import date

import pytest

from event_budget.field_store import FieldNotLiveError
from event_budget.session import BudgetSession
from event_budget.storage import PersistenceError, SnapshotStorage


def _filled_session():
    session = BudgetSession()
    session.edit('showTitle', 'Warehouse Night')
    session.edit('showDate', '2025-03-14')
    session.set_count('headliner', 2)
    session.edit('headliner_name_2', 'Beta, "the second"')
    session.edit('headliner_fee_2', '750')
    session.set_count('merchVendor', 1)
    session.edit('merchVendor_fee_1', '90')
    session.set_category_count(1)
    session.edit('otherCategoryName_1', 'Decor')
    session.set_category_item_count(1, 2)
    session.edit('otherCategory_1_itemFee_2', '40')
    session.edit('physicalFlyers', '25')
    return session


def test_export_then_import_reproduces_every_field():
    source = _filled_session()
    target = BudgetSession()
    report = target.import_snapshot(source.export_snapshot())

    assert report.dropped == []
    assert target.store.persistable_items() == source.store.persistable_items()
    assert target.totals == source.totals
    assert target.status == report.message


def test_long_rider_survives_export_and_import():
    source = BudgetSession()
    source.edit('headliner_rider_1', 'x' * 200000)
    target = BudgetSession()
    report = target.import_snapshot(source.export_snapshot())

    assert target.store.get('headliner_rider_1') == 'x' * 200000
    assert report.dropped == []


def test_unclosed_quote_does_not_hide_later_rows():
    session = BudgetSession()
    session.import_snapshot('XODIA_BUDGET_VERSION,4\nShow Title,"Broken\nID:venue,300\nID:lights,50\n')
    assert session.store.get('showTitle') == 'Broken'
    assert session.store.get('venue') == '300'
    assert session.store.get('lights') == '50'


def test_totals_follow_edits():
    session = BudgetSession()
    session.edit('headliner_fee_1', '500')
    session.edit('doorSales', '800')
    assert session.totals.net_profit == 300.0
    session.set_count('headliner', 0)
    assert session.totals.net_profit == 800.0


def test_edit_unknown_field_raises():
    session = BudgetSession()
    with pytest.raises(FieldNotLiveError):
        session.edit('localDJ_fee_1', '10')


def test_import_nothing_leaves_budget_untouched():
    session = _filled_session()
    before = session.values()
    assert session.import_snapshot('   ') is None
    assert session.status == 'Nothing to import.'
    assert session.values() == before


def test_reset_clears_budget_and_status():
    session = _filled_session()
    session.import_snapshot('')
    session.reset()
    assert session.status == ''
    assert session.store.get('showTitle') == ''
    assert session.store.materialized('headliner') == 1
    assert session.totals.total_expenses == 0.0


def test_save_requires_a_real_title(tmp_path):
    storage = SnapshotStorage(tmp_path)
    session = BudgetSession()
    with pytest.raises(ValueError):
        session.save_to(storage)
    session.edit('showTitle', 'Untitled Event')
    with pytest.raises(ValueError):
        session.save_to(storage)
    assert session.status == 'Please enter a show title before saving.'
    assert storage.list() == []


def test_save_load_delete_round_trip(tmp_path):
    storage = SnapshotStorage(tmp_path)
    session = _filled_session()
    snapshot_id = session.save_to(storage)
    assert session.status == 'Budget saved successfully!'
    assert session.store.get('budgetSelector') == snapshot_id

    other = BudgetSession()
    other.load_from(storage, snapshot_id)
    assert other.status == 'Budget loaded successfully!'
    assert other.store.persistable_items() == session.store.persistable_items()
    assert other.store.get('budgetSelector') == snapshot_id

    assert other.delete_from(storage, snapshot_id) is True
    assert other.store.get('budgetSelector') == ''
    assert storage.list() == []


def test_save_defaults_the_date():
    saved = {}

    class RecordingStore:
        def save(self, text, metadata):
            saved.update(metadata, text=text)
            return 'id-1'

    session = BudgetSession()
    session.edit('showTitle', 'Rooftop')
    session.save_to(RecordingStore())
    assert saved['name'] == 'Rooftop'
    assert saved['date'] == date.today().isoformat()
    assert saved['text'].startswith('XODIA_BUDGET_VERSION,4\nShow Title,Rooftop\n')


def test_failed_load_keeps_current_budget():
    class BrokenStore:
        def load(self, snapshot_id):
            raise PersistenceError('http://budgets.local', 503, 'Service unavailable')

    session = _filled_session()
    before = session.values()
    with pytest.raises(PersistenceError):
        session.load_from(BrokenStore(), 'abc')
    assert session.values() == before
    assert session.status.startswith('Failed to load budget:')


def test_export_file_names():
    session = _filled_session()
    assert session.export_file_name() == 'budget_Warehouse_Night_2025-03-14.csv'
    assert session.export_file_name('txt') == 'Warehouse_Night_2025-03-14.txt'
