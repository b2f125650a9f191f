from event_budget.file_operations import csv_file_name, ensure_directory, safe_filename, txt_file_name
from event_budget.formatting import escape_dollar_for_markdown, format_currency, format_profit


def test_format_currency():
    assert format_currency(1234.56) == '$1,234.56'
    assert format_currency(1234.56, include_sign=False) == '1,234.56'
    assert format_currency(0) == '$0.00'


def test_format_profit_sign():
    assert format_profit(300) == '+$300.00'
    assert format_profit(0) == '+$0.00'
    assert format_profit(-250) == '-$250.00'


def test_escape_dollar_for_markdown():
    assert escape_dollar_for_markdown('net $5') == 'net \\$5'


def test_safe_filename():
    assert safe_filename('Warehouse Night: Vol 2') == 'Warehouse_Night_Vol_2'
    assert safe_filename('a/b\\c*?') == 'abc'
    assert safe_filename('') == 'budget_export'
    assert len(safe_filename('x' * 200)) == 80


def test_export_file_names():
    assert csv_file_name('Warehouse Night', '2025-03-14') == 'budget_Warehouse_Night_2025-03-14.csv'
    assert csv_file_name('', '') == 'budget_UNTITLED_EVENT_NO_DATE.csv'
    assert txt_file_name('Warehouse Night', '2025-03-14') == 'Warehouse_Night_2025-03-14.txt'
    assert txt_file_name('', '') == 'budget_export.txt'


def test_ensure_directory(tmp_path):
    target = ensure_directory(tmp_path / 'a' / 'b')
    assert target.is_dir()
