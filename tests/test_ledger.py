import pandas as pd
import pytest

from event_budget.ledger import EXPENSE_SECTIONS, LINE_ITEM_COLUMNS, REVENUE_SECTIONS, line_items, recompute, totals_frame


def _sample_values():
    return {
        'numHeadliners': '2',
        'headliner_name_1': 'Alpha',
        'headliner_fee_1': '500',
        'headliner_hotel_1': '120',
        'headliner_rider_1': 'snacks',
        'headliner_fee_2': '300',
        'directSupport': '100',
        'numLocalDJs': '1',
        'localDJ_fee_1': '50',
        'numCDJs': '2',
        'cdj_fee_1': '40',
        'cdj_fee_2': ' 40 ',
        'cdj_fee_3': '999',  # beyond the count, ignored
        'facebookAdsXodia': '60',
        'numShowRunners': '1',
        'showRunner_fee_1': '25',
        'numOtherCategories': '1',
        'otherCategoryName_1': 'Decor',
        'otherCategoryCount_1': '2',
        'otherCategory_1_itemFee_1': '30',
        'otherCategory_1_itemFee_2': '20',
        'eventbriteSales': '1500',
        'doorSales': '400',
        'numMerchVendors': '1',
        'merchVendor_fee_1': '75',
    }


def test_recompute_sums_sections():
    totals = recompute(_sample_values())

    assert totals.expenses == {
        'Headliners': 920.0,
        'Support': 150.0,
        'Production': 0.0,
        'Gear': 80.0,
        'Marketing': 60.0,
        'Staff': 25.0,
        'Other': 50.0,
    }
    assert totals.revenue['Eventbrite'] == 1500.0
    assert totals.revenue['Merch Vendors'] == 75.0
    assert totals.total_expenses == 1285.0
    assert totals.total_revenue == 1975.0
    assert totals.net_profit == 690.0


def test_as_dict_includes_totals():
    result = recompute(_sample_values()).as_dict()
    assert result['expenses']['total'] == 1285.0
    assert result['revenue']['total'] == 1975.0
    assert result['netProfit'] == 690.0
    assert list(result['expenses'])[:-1] == list(EXPENSE_SECTIONS)


def test_empty_budget_is_all_zero():
    totals = recompute({})
    assert set(totals.expenses) == set(EXPENSE_SECTIONS)
    assert set(totals.revenue) == set(REVENUE_SECTIONS)
    assert totals.net_profit == 0.0


def test_line_items_labels_and_amounts():
    items = line_items(_sample_values())
    assert list(items.columns) == LINE_ITEM_COLUMNS

    headliners = items[items['section'] == 'Headliners']
    assert list(headliners['label'])[:4] == ['Alpha Fee:', 'Alpha Hotel:', 'Alpha Rider:', 'Headliner 2 Fee:']
    rider = items.loc[items['field_id'] == 'headliner_rider_1'].iloc[0]
    assert rider['raw'] == 'snacks'
    assert rider['amount'] == 0.0

    facebook = items.loc[items['field_id'] == 'facebookAdsXodia'].iloc[0]
    assert facebook['heading'] == 'Facebook Ads'
    assert facebook['label'] == 'XODIA:'

    other = items[items['section'] == 'Other']
    assert list(other['heading']) == ['Decor', 'Decor']
    assert list(other['label']) == ['Item 1:', 'Item 2:']
    assert 'cdj_fee_3' not in set(items['field_id'])


def test_totals_frame_is_long_format():
    frame = totals_frame(recompute(_sample_values()))
    assert isinstance(frame, pd.DataFrame)
    assert len(frame) == len(EXPENSE_SECTIONS) + len(REVENUE_SECTIONS)
    door = frame[(frame['kind'] == 'revenue') & (frame['section'] == 'Door')]
    assert door['amount'].item() == pytest.approx(400.0)
