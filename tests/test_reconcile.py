import pytest

from event_budget.field_store import FieldStore
from event_budget.group_store import GroupStore
from event_budget.reconcile import ApplyReport, Reconciler, ReconciliationInProgressError
from event_budget.repeaters import RepeaterController
from event_budget.snapshot import decode, encode


def _reconciler(on_applied=None):
    store = FieldStore()
    controller = RepeaterController(store, GroupStore())
    controller.reset(notify=False)
    return store, controller, Reconciler(store, controller, on_applied=on_applied)


def _apply_text(text):
    store, _, reconciler = _reconciler()
    report = reconciler.apply(decode(text))
    return store, report


def test_headliner_snapshot_applies_and_encodes_in_registry_order():
    store, report = _apply_text(
        'V,4\nShow Title,Test\nID:numHeadliners,2\nID:headliner_fee_1,500\nID:headliner_fee_2,750'
    )
    assert store.get('headliner_fee_1') == '500'
    assert store.get('headliner_fee_2') == '750'
    assert not store.has('headliner_fee_3')
    assert report.version == 4

    lines = encode(store.persistable_items()).splitlines()
    assert lines[:3] == ['XODIA_BUDGET_VERSION,4', 'Show Title,Test', 'Show Date,']
    wanted = ['ID:numHeadliners,2', 'ID:headliner_fee_1,500', 'ID:headliner_fee_2,750']
    assert [line for line in lines if line in wanted] == wanted


CATEGORY_ROWS = [
    'ID:numOtherCategories,1',
    'ID:otherCategoryCount_1,3',
    'ID:otherCategory_1_itemFee_1,10',
    'ID:otherCategory_1_itemFee_2,20',
    'ID:otherCategory_1_itemFee_3,30',
]


@pytest.mark.parametrize('order', [
    [0, 1, 2, 3, 4],
    [4, 3, 2, 1, 0],
    [2, 0, 4, 1, 3],
    [3, 4, 1, 2, 0],
])
def test_category_items_apply_in_any_order(order):
    text = 'XODIA_BUDGET_VERSION,4\n' + '\n'.join(CATEGORY_ROWS[i] for i in order)
    store, report = _apply_text(text)

    assert store.materialized('otherCategory_1') == 3
    assert [store.get(f'otherCategory_1_itemFee_{i}') for i in (1, 2, 3)] == ['10', '20', '30']
    assert store.has('otherCategory_1_itemName_3')
    assert not store.has('otherCategory_1_itemFee_4')
    assert report.dropped == []


def test_deprecated_label_matches_canonical_label():
    old, _ = _apply_text('Show Title,A\nFlyers,125')
    new, _ = _apply_text('XODIA_BUDGET_VERSION,4\nShow Title,A\nID:physicalFlyers,125')
    assert old.get('physicalFlyers') == new.get('physicalFlyers') == '125'


def test_semantic_labels_infer_missing_counts():
    store, report = _apply_text(
        'Show Title,Old Show\n'
        'Headliner 1 Name,Alpha\n'
        'Headliner 2 Fee,300\n'
        'Category 1 Name,Decor\n'
        'Category 1 Item 2 Fee,45\n'
    )
    assert store.get('numHeadliners') == '2'
    assert store.get('headliner_name_1') == 'Alpha'
    assert store.get('headliner_fee_2') == '300'
    assert store.get('numOtherCategories') == '1'
    assert store.get('otherCategoryCount_1') == '2'
    assert store.get('otherCategory_1_itemFee_2') == '45'
    assert report.inferred_counts == {
        'numHeadliners': 2,
        'numOtherCategories': 1,
        'otherCategoryCount_1': 2,
    }


def test_explicit_count_wins_over_observed_rows():
    store, report = _apply_text('ID:numHeadliners,1\nID:headliner_fee_1,100\nID:headliner_fee_2,200')
    assert store.materialized('headliner') == 1
    assert 'headliner_fee_2' in report.dropped
    assert report.inferred_counts == {}


def test_unknown_and_ui_fields_are_dropped():
    store, report = _apply_text(
        'XODIA_BUDGET_VERSION,4\nID:venue,300\nID:bogus,1\nID:budgetSelector,123\n'
        'ID:numOtherCategories,1\nID:otherCategoryCount_5,2'
    )
    assert store.materialized('otherCategory') == 1
    assert store.get('venue') == '300'
    assert store.get('budgetSelector') == ''
    assert sorted(report.dropped) == ['bogus', 'budgetSelector', 'otherCategoryCount_5']
    assert report.message == f'Imported {len(report.applied)} fields, ignored 3 unknown.'


@pytest.mark.parametrize('qualifier, target', [
    ('SPACE CAMP HQ', 'facebookAdsSpaceCampHQ'),
    ('XODIA', 'facebookAdsXodia'),
    (None, 'facebookAdsXodia'),
])
def test_legacy_ad_spend_is_split_by_account(qualifier, target):
    text = 'Show Title,Old\nFacebook Ads,200\n'
    if qualifier is not None:
        text += f'Facebook Ads Account,{qualifier}\n'
    store, report = _apply_text(text)
    assert store.get(target) == '200'
    assert report.migrated == {'facebookAds': target}
    assert 'facebookAds' not in report.dropped


def test_legacy_split_skipped_when_new_fields_present():
    store, report = _apply_text('Facebook Ads,200\nFacebook Ads Account,SPACE CAMP HQ\nFacebook Ads XODIA,80')
    assert store.get('facebookAdsXodia') == '80'
    assert store.get('facebookAdsSpaceCampHQ') == ''
    assert report.migrated == {}
    assert sorted(report.dropped) == ['facebookAds', 'facebookAdsAccount']


@pytest.mark.parametrize('text', [
    'XODIA_BUDGET_VERSION,4\nFacebook Ads,200\n',
    'XODIA_BUDGET_VERSION,4\nID:facebookAds,200\n',
    'V,3\nFacebook Ads,200\n',
])
def test_legacy_split_applies_to_every_version(text):
    store, report = _apply_text(text)
    assert store.get('facebookAdsXodia') == '200'
    assert report.migrated == {'facebookAds': 'facebookAdsXodia'}
    assert report.dropped == []


def test_account_without_legacy_amount_is_dropped():
    store, report = _apply_text('XODIA_BUDGET_VERSION,4\nInstagram Ads Account,SPACE CAMP HQ\n')
    assert store.get('instagramAdsSpaceCampHQ') == ''
    assert report.dropped == ['instagramAdsAccount']


def test_zero_padded_indices_land_on_the_canonical_slot():
    store, report = _apply_text(
        'XODIA_BUDGET_VERSION,4\nID:headliner_fee_01,500\nID:otherCategory_01_itemFee_02,15\n'
    )
    assert store.get('numHeadliners') == '1'
    assert store.get('headliner_fee_1') == '500'
    assert store.get('otherCategoryCount_1') == '2'
    assert store.get('otherCategory_1_itemFee_2') == '15'
    assert report.dropped == []
    assert 'headliner_fee_1' in report.applied


def test_apply_replaces_previous_budget():
    store, controller, reconciler = _reconciler()
    reconciler.apply(decode('ID:numLocalDJs,2\nID:localDJ_fee_2,150\nID:venue,300'))
    reconciler.apply(decode('ID:lights,40'))

    assert store.get('numLocalDJs') == '0'
    assert store.get('venue') == ''
    assert store.get('lights') == '40'
    controller.set_count('localDJ', 2)
    assert store.get('localDJ_fee_2') == ''


def test_apply_accepts_plain_pairs():
    store, _, reconciler = _reconciler()
    report = reconciler.apply([('Venue', '300'), ('ID:numCDJs', '2')], version=4)
    assert isinstance(report, ApplyReport)
    assert store.get('venue') == '300'
    assert store.materialized('cdj') == 2


def test_on_applied_runs_once_per_apply():
    calls = []
    _, _, reconciler = _reconciler(on_applied=lambda: calls.append(True))
    reconciler.apply(decode('Venue,1'))
    assert calls == [True]


def test_reentrant_apply_is_rejected(monkeypatch):
    store, controller, reconciler = _reconciler()

    def reenter(notify=True):
        reconciler.apply([('Venue', '999')])

    monkeypatch.setattr(controller, 'reset', reenter)
    with pytest.raises(ReconciliationInProgressError):
        reconciler.apply([('Venue', '1')])

    monkeypatch.undo()
    reconciler.apply([('Venue', '2')])
    assert store.get('venue') == '2'
