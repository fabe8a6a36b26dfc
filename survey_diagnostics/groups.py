'''
Group level aggregates, used both for enumerators and for geographic units.

The same code path serves every grouping column; a reference table of
expected submissions is only passed for units that have targets.
'''
from collections import namedtuple
import numpy as np
import pandas as pd

from survey_diagnostics import schema
from survey_diagnostics.descriptives import summarize, normalize_fields, STATS

GroupResult = namedtuple('GroupResult', ['by_day', 'summary'])

UNKNOWN_DAY = 'unknown'


def submission_days(column_data:pd.Series)->pd.Series:
    return pd.to_datetime(column_data).dt.strftime('%Y-%m-%d')


def group_by_day(data:pd.DataFrame, group_column:str, date_column:str)->pd.DataFrame:
    '''
    Submissions per group per calendar day. One row per group, one column per
    day (ascending), zero where a group had no submissions that day, and a
    trailing total column. Submissions without a timestamp are counted in an
    'unknown' column before the total.
    '''
    if len(data)==0:
        return pd.DataFrame(columns=[group_column, 'total'])

    days = submission_days(data[date_column]).fillna(UNKNOWN_DAY)
    pivot = pd.crosstab(data[group_column], days)
    day_columns = sorted(c for c in pivot.columns if c!=UNKNOWN_DAY)
    if UNKNOWN_DAY in pivot.columns:
        day_columns.append(UNKNOWN_DAY)
    pivot = pivot.reindex(day_columns, axis=1)
    pivot.columns = [str(c) for c in pivot.columns]
    pivot['total'] = pivot.sum(axis=1)
    pivot.index.name = group_column
    return pivot.reset_index()


def percent_of_expected(submissions:pd.Series, expected:pd.Series)->pd.Series:
    '''
    submissions / expected * 100, NaN where expected is 0 or unknown
    '''
    expected = expected.astype(float)
    safe = expected.where(expected>0)
    return submissions.astype(float)/safe*100


def suggest_units(groups, reference:pd.Series)->list:
    '''
    For every group not found in the reference, the closest reference unit by
    fuzzy match. Blank when the unit is known or nothing is close enough.
    '''
    matcher = schema.category(list(reference.index))
    suggestions = []
    for g in groups:
        if matcher.evaluate(g):
            suggestions.append('')
            continue
        guess = matcher.enforce(g)
        suggestions.append('' if guess is None else guess)
    return suggestions


def group_summary(data:pd.DataFrame, group_column:str, stats_fields=(), date_column:str=None,
                  reference:pd.Series=None, include_inactive:bool=False)->pd.DataFrame:
    '''
    Per group totals, activity dates, descriptive statistics and progress
    against target.

    stats_fields: fields summarised per group as <field>_count, _mean, ...
    reference: pd.Series, expected submissions indexed by group value
    include_inactive: bool, also list reference groups without submissions.
        By default only groups present in data are listed.
    '''
    stats_fields = [name for name, _ in normalize_fields(stats_fields)]
    missing = [c for c in [group_column, date_column]+stats_fields if c is not None and c not in data.columns]
    if len(missing)>0:
        raise KeyError(f'group check columns not in data: {missing}')

    grouped = data.groupby(group_column, sort=True)
    summary = grouped.size().rename('submissions').to_frame()

    if date_column is not None:
        dates = pd.to_datetime(data[date_column])
        by_group = dates.groupby(data[group_column])
        summary['first_submission'] = by_group.min()
        summary['last_submission'] = by_group.max()
        summary['days_active'] = submission_days(dates).groupby(data[group_column]).nunique()

    for field in stats_fields:
        stats = {key: summarize(g[field]) for key, g in grouped}
        for stat in STATS:
            summary[f'{field}_{stat}'] = pd.Series({key: s[stat] for key, s in stats.items()})

    if reference is not None:
        if include_inactive:
            inactive = [u for u in reference.index if u not in summary.index]
            if len(inactive)>0:
                summary = summary.reindex(list(summary.index)+inactive)
                summary.loc[inactive, 'submissions'] = 0
                if date_column is not None:
                    summary.loc[inactive, 'days_active'] = 0
                for field in stats_fields:
                    summary.loc[inactive, f'{field}_count'] = 0
                summary['submissions'] = summary['submissions'].astype(int)

        summary['expected'] = summary.index.map(lambda g: reference.get(g, np.nan)).astype(float)
        summary['pct_expected'] = percent_of_expected(summary['submissions'], summary['expected'])
        summary['suggested_unit'] = suggest_units(summary.index, reference)

    summary.index.name = group_column
    return summary.reset_index()


def group_check(data:pd.DataFrame, group_column:str, date_column:str=None, stats_fields=(),
                reference:pd.Series=None, include_inactive:bool=False)->GroupResult:
    '''
    Runs the by-day and summary aggregates for one grouping column

    returns: GroupResult(by_day, summary), by_day is None without a date column
    '''
    summary = group_summary(data, group_column, stats_fields=stats_fields, date_column=date_column,
                            reference=reference, include_inactive=include_inactive)
    by_day = None
    if date_column is not None:
        by_day = group_by_day(data, group_column, date_column)
        if include_inactive and reference is not None:
            by_day = (by_day.set_index(group_column)
                      .reindex(pd.Index(summary[group_column], name=group_column), fill_value=0)
                      .reset_index())
    return GroupResult(by_day, summary)
