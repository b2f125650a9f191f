from event_budget.session import BudgetSession
from event_budget.text_report import render_text_report


def _session():
    session = BudgetSession()
    session.edit('showTitle', 'Warehouse Night')
    session.edit('showDate', '2025-03-14')
    session.edit('headliner_name_1', 'DJ Example')
    session.edit('headliner_fee_1', '500')
    session.edit('venue', '200')
    session.edit('doorSales', '1000')
    return session


def test_report_layout():
    report = _session().text_report()
    lines = report.splitlines()

    assert lines[0] == 'EVENT: WAREHOUSE NIGHT  |  DATE: 2025-03-14'
    assert 'EXPENSES' in lines
    assert 'REVENUE' in lines
    fee_line = next(line for line in lines if line.startswith('DJ Example Fee:'))
    assert fee_line.endswith('$500.00')
    total_line = next(line for line in lines if line.startswith('TOTAL EXPENSES:'))
    assert total_line.endswith('$700.00')
    assert lines[-2:] == ['-' * 32, '+$300.00']


def test_sections_without_rows_are_left_out():
    report = _session().text_report()
    assert 'TOTAL HEADLINERS:' in report
    assert 'TOTAL OTHER:' not in report


def test_other_category_headings():
    session = _session()
    session.set_category_count(2)
    session.set_category_item_count(1, 1)
    session.set_category_item_count(2, 1)
    session.edit('otherCategoryName_1', 'Decor')
    session.edit('otherCategory_1_itemName_1', 'Balloons')
    session.edit('otherCategory_1_itemFee_1', '35')
    session.edit('otherCategory_2_itemFee_1', '15')

    lines = session.text_report().splitlines()
    start = lines.index('OTHER')
    assert lines[start + 1] == 'Decor'
    assert lines[start + 2].startswith('Balloons:')
    assert lines[start + 3] == ''
    assert lines[start + 4] == 'Category 2'
    assert lines[start + 5].startswith('Item 1:')
    assert lines[start + 6].endswith('$50.00')


def test_loss_and_untitled_event():
    report = render_text_report({'numHeadliners': '1', 'headliner_fee_1': '250'})
    assert report.splitlines()[0] == 'EVENT: UNTITLED EVENT'
    assert report.endswith('-$250.00')
