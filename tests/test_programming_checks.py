"""
Tests for survey programming checks.
"""

import pandas as pd
import pytest

from survey_diagnostics import _programming_checks as pc
from survey_diagnostics.config import load_checks
from conftest import TEST_DATA

ID_COLUMNS = ['key', 'enum_id', 'village']


@pytest.fixture
def check_dict():
    return load_checks(TEST_DATA)


def test_combined_report(survey, check_dict):
    result = pc.programming_issue_check(survey, check_dict, id_columns=ID_COLUMNS)

    assert list(result.columns) == ID_COLUMNS + ['issue', 'formdef_version', 'crop_prod_unit',
                                                 'crop_sale_unit', 'wrong_site']
    assert result['key'].tolist() == [3002, 3003, 3004]
    assert result['issue'].tolist() == ['unit_mismatch', 'outdated_form', 'wrong_site']
    mismatch = result.iloc[0]
    assert mismatch['crop_prod_unit'] == 'kg'
    assert mismatch['crop_sale_unit'] == 'bag'
    assert pd.isnull(mismatch['formdef_version'])
    assert result.iloc[1]['formdef_version'] == 2401


def test_check_order_does_not_matter(survey, check_dict):
    forward = pc.programming_issue_check(survey, check_dict, id_columns=ID_COLUMNS)
    backward = pc.programming_issue_check(survey, dict(reversed(list(check_dict.items()))), id_columns=ID_COLUMNS)
    pd.testing.assert_frame_equal(forward, backward)


def test_record_failing_several_checks():
    data = pd.DataFrame({'key': [1, 2], 'prod_unit': ['kg', 'kg'], 'sale_unit': ['bag', 'kg'],
                         'wrong_site': [1, 0]})
    checks = [
        pc.programming_check(pc.values_match, {'x': 'prod_unit', 'y': 'sale_unit'}, issue='unit_mismatch'),
        pc.programming_check(pc.not_flagged, {'column': 'wrong_site'}, issue='wrong_site'),
    ]
    result = pc.programming_issue_check(data, checks, id_columns=['key'])
    assert result['key'].tolist() == [1, 1]
    assert result['issue'].tolist() == ['unit_mismatch', 'wrong_site']


def test_no_failures():
    data = pd.DataFrame({'key': [1], 'a': [1], 'b': [1]})
    checks = {'a_b': pc.programming_check(pc.values_match, {'x': 'a', 'y': 'b'})}
    result = pc.programming_issue_check(data, checks, id_columns=['key'])
    assert len(result) == 0
    assert list(result.columns) == ['key', 'issue', 'a', 'b']


def test_not_applicable_rows_pass():
    data = pd.DataFrame({'x': ['kg', None, ''], 'y': ['bag', 'bag', 'kg']})
    passfail = pc.programming_check(pc.values_match, {'x': 'x', 'y': 'y'}).evaluate(data)
    assert passfail.tolist() == [False, True, True]


def test_explicit_supporting_columns():
    data = pd.DataFrame({'key': [1], 'total': [10], 'a': [3], 'b': [4], 'note': ['x']})
    check = pc.programming_check(pc.total_matches, {'total_name': 'total', 'component_names': ['a', 'b']},
                                 columns=['total', 'note'])
    result = pc.programming_issue_check(data, {'total_mismatch': check}, id_columns=['key'])
    assert list(result.columns) == ['key', 'issue', 'total', 'note']


def test_func_must_be_callable():
    with pytest.raises(TypeError):
        pc.programming_check('values_match')


def test_unnamed_check_in_list():
    data = pd.DataFrame({'key': [1], 'a': [1], 'b': [2]})
    with pytest.raises(ValueError):
        pc.programming_issue_check(data, [pc.programming_check(pc.values_match, {'x': 'a', 'y': 'b'})])


@pytest.mark.parametrize('row, kwargs, expected', [
    ({'v': 2403}, {'version_column': 'v', 'current_versions': '2403'}, True),
    ({'v': 2401}, {'version_column': 'v', 'current_versions': [2402, 2403]}, False),
    ({'v': None}, {'version_column': 'v', 'current_versions': [2403]}, None),
])
def test_form_version_current(row, kwargs, expected):
    assert pc.form_version_current(pd.Series(row), **kwargs) == expected


def test_predicate_helpers():
    row = pd.Series({'age': 130, 'crop': 'maize', 'total': 10, 'a': 4, 'b': 6, 'x': 5, 'y': 0,
                     'sells': 1, 'price': None})
    assert pc.within_range(row, 'age', min=0, max=110) is False
    assert pc.within_range(row, 'age', min=0) is True
    assert pc.in_choices(row, 'crop', ['maize', 'beans']) is True
    assert pc.total_matches(row, 'total', ['a', 'b']) == True
    assert pc.total_matches(row, 'total', ['a'], tolerance=5) == False
    assert pc.ratio_within(row, 'x', 'y', (0, 1)) is None
    assert pc.ratio_within(row, 'a', 'x', (0, 1)) is True
    assert pc.answered_if(row, 'sells', 1, 'price') is False
    assert pc.answered_if(row, 'sells', 0, 'price') is None
