"""
Tests for enumerator and village aggregates.
"""

import pandas as pd
import pytest

from survey_diagnostics.groups import group_by_day, group_summary, group_check, percent_of_expected


def test_by_day_pivot(survey):
    by_day = group_by_day(survey, 'enum_id', 'submission_date')

    assert list(by_day.columns) == ['enum_id', '2024-03-01', '2024-03-02', '2024-03-03', '2024-03-04', 'total']
    rows = by_day.set_index('enum_id')
    assert rows.loc['E01'].tolist() == [2, 0, 2, 1, 5]
    assert rows.loc['E02'].tolist() == [1, 1, 1, 1, 4]
    assert rows.loc['E03'].tolist() == [0, 2, 1, 0, 3]


@pytest.mark.parametrize('column', ['enum_id', 'village'])
def test_by_day_totals_match_summary(survey, villages, column):
    result = group_check(survey, column, date_column='submission_date', reference=villages)
    day_columns = [c for c in result.by_day.columns if c not in (column, 'total')]
    row_sums = result.by_day.set_index(column)[day_columns].sum(axis=1)
    totals = result.summary.set_index(column)['submissions']
    pd.testing.assert_series_equal(row_sums.sort_index(), totals.sort_index(), check_names=False, check_dtype=False)


def test_enumerator_summary(survey):
    summary = group_summary(survey, 'enum_id', stats_fields=['inc_01'], date_column='submission_date')

    assert 'expected' not in summary.columns
    e01 = summary.set_index('enum_id').loc['E01']
    assert e01['submissions'] == 5
    assert e01['first_submission'] == pd.Timestamp('2024-03-01 09:00')
    assert e01['last_submission'] == pd.Timestamp('2024-03-04 10:00')
    assert e01['days_active'] == 3
    assert e01['inc_01_count'] == 5
    assert e01['inc_01_mean'] == pytest.approx((10 + 12 + 9 + 11 + 10) / 5)


def test_village_progress_left_join(survey, villages):
    summary = group_summary(survey, 'village', stats_fields=['inc_01'], reference=villages).set_index('village')

    assert summary.index.tolist() == ['Alpha', 'Beta', 'Betta', 'Gamma']
    assert summary.loc['Alpha', 'pct_expected'] == pytest.approx(100)
    assert summary.loc['Beta', 'pct_expected'] == pytest.approx(75)
    assert summary.loc['Gamma', 'inc_01_count'] == 2
    assert summary.loc['Gamma', 'inc_01_mean'] == pytest.approx(507)
    assert pd.isnull(summary.loc['Betta', 'expected'])
    assert pd.isnull(summary.loc['Betta', 'pct_expected'])


def test_unknown_unit_gets_a_suggestion(survey, villages):
    summary = group_summary(survey, 'village', reference=villages).set_index('village')
    assert summary.loc['Betta', 'suggested_unit'] == 'Beta'
    assert summary.loc['Alpha', 'suggested_unit'] == ''


def test_include_inactive_units(survey, villages):
    result = group_check(survey, 'village', date_column='submission_date', stats_fields=['inc_01'],
                         reference=villages, include_inactive=True)
    summary = result.summary.set_index('village')

    assert summary.index.tolist() == ['Alpha', 'Beta', 'Betta', 'Gamma', 'Delta']
    assert summary.loc['Delta', 'submissions'] == 0
    assert summary.loc['Delta', 'expected'] == 0
    assert pd.isnull(summary.loc['Delta', 'pct_expected'])
    assert pd.isnull(summary.loc['Delta', 'inc_01_mean'])
    assert result.by_day.set_index('village').loc['Delta', 'total'] == 0


def test_percent_of_expected_handles_zero():
    pct = percent_of_expected(pd.Series([3, 2, 0]), pd.Series([4, 0, 5]))
    assert pct[0] == pytest.approx(75)
    assert pd.isnull(pct[1])
    assert pct[2] == 0


def test_group_check_without_dates(small_survey):
    result = group_check(small_survey, 'enum_id')
    assert result.by_day is None
    assert result.summary['submissions'].sum() == len(small_survey)


def test_unknown_group_column(small_survey):
    with pytest.raises(KeyError):
        group_summary(small_survey, 'nope')


def test_missing_timestamp_counted_as_unknown():
    data = pd.DataFrame({'enum_id': ['E1', 'E1', 'E1'],
                         'submission_date': pd.to_datetime(['2024-03-01 09:00', None, '2024-03-02 10:00'])})
    result = group_check(data, 'enum_id', date_column='submission_date')

    by_day = result.by_day.set_index('enum_id')
    assert list(by_day.columns) == ['2024-03-01', '2024-03-02', 'unknown', 'total']
    assert by_day.loc['E1'].tolist() == [1, 1, 1, 3]
    assert by_day.loc['E1', 'total'] == result.summary.set_index('enum_id').loc['E1', 'submissions']
