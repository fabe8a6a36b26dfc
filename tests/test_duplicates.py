"""
Tests for duplicate identifier review and remediation.
"""

import numpy as np
import pandas as pd
import pytest

from survey_diagnostics.duplicates import duplicate_check, remediate_duplicates
from survey_diagnostics.errors import MissingIdentifierError


def test_remediation_numbers_in_row_order(small_survey):
    """3004 on records 5 and 9 becomes 3004_1 and 3004_2."""
    working = remediate_duplicates(small_survey, 'key')

    assert working.loc[4, 'key'] == '3004_1'
    assert working.loc[8, 'key'] == '3004_2'
    assert working.loc[0, 'key'] == 1001
    assert working.loc[4, 'key_original'] == 3004
    assert working['key'].is_unique


def test_remediation_does_not_modify_input(small_survey):
    before = small_survey.copy()
    remediate_duplicates(small_survey, 'key')
    pd.testing.assert_frame_equal(small_survey, before)


def test_remediation_skips_existing_ids():
    data = pd.DataFrame({'key': ['A', 'A', 'A_1']})
    working = remediate_duplicates(data, 'key')
    assert working['key'].tolist() == ['A_2', 'A_3', 'A_1']


@pytest.mark.parametrize('seed', range(5))
def test_remediated_ids_are_unique(seed):
    rng = np.random.default_rng(seed)
    ids = rng.integers(0, 15, size=40)
    data = pd.DataFrame({'key': ids})
    working = remediate_duplicates(data, 'key', keep_original=False)
    assert working['key'].astype(str).is_unique


def test_duplicate_report(small_survey):
    report = duplicate_check(small_survey, 'key', display_columns=['enum_id', 'village', 'inc_01'])

    assert list(report.columns) == ['key', 'duplicate_count', 'row_number', 'enum_id', 'village',
                                    'inc_01', 'differing_columns']
    assert report['key'].tolist() == [3004, 3004]
    assert report['row_number'].tolist() == [5, 9]
    assert report['duplicate_count'].tolist() == [2, 2]
    assert report['differing_columns'].iloc[0] == 'enum_id, village'


def test_duplicate_report_groups_in_first_appearance_order():
    data = pd.DataFrame({'key': [7, 5, 7, 5, 9], 'x': [1, 2, 3, 4, 5]})
    report = duplicate_check(data, 'key')
    assert report['key'].tolist() == [7, 7, 5, 5]
    assert report['row_number'].tolist() == [1, 3, 2, 4]


def test_no_duplicates():
    data = pd.DataFrame({'key': [1, 2, 3], 'enum_id': ['a', 'b', 'c']})
    report = duplicate_check(data, 'key')
    assert len(report) == 0
    assert 'enum_id' in report.columns


def test_blank_ids_are_not_grouped():
    data = pd.DataFrame({'key': [1, None, None]})
    with pytest.raises(MissingIdentifierError) as e:
        duplicate_check(data, 'key')
    assert e.value.rows == [2, 3]


def test_unknown_display_column(small_survey):
    with pytest.raises(KeyError):
        duplicate_check(small_survey, 'key', display_columns=['nope'])
