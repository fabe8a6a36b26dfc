"""
Class structure for survey programming checks. Each object holds a row
predicate, the keyword arguments it is called with and the supporting fields
that help diagnose a failure. Checks are independent: the combined report is
the same whatever order they are given in.

The predicate helpers at the bottom return True when a row passes and None
when the check does not apply to the row (treated as a pass).
"""

import pandas as pd

from survey_diagnostics.utils import type_missing_check


class programming_check():
    """
    Named rule that every submission is expected to satisfy.

    Attributes
    ----------
    issue: str, label reported in the issue column. The key of a CHECK_DICT
        is used when this is None
    func: function, called as func(row, **func_kwargs), returns True if the
        row passes
    func_kwargs: dict, {argument: value} passed to func. Values are usually
        column names
    columns: list, supporting fields reported for failing rows. When None the
        func_kwargs values that name columns of the data are used


    Functions
    ---------
    evaluate: pass/fail series for a dataframe
    failures: failing rows with their supporting fields
    """

    def __init__(self, func, func_kwargs=None, columns=None, issue=None):
        if not callable(func):
            raise TypeError(f'programming_check func must be callable. {type(func)} provided')
        self.func = func
        self.func_kwargs = dict(func_kwargs or {})
        self.columns = list(columns) if columns is not None else None
        self.issue = issue

    def display(self):
        print(str(self))
        print(self.func.__doc__)

    def __str__(self):
        return '\n'.join(["%s: %s" % item for item in vars(self).items()])

    def supporting_columns(self, data:pd.DataFrame)->list:
        if self.columns is not None:
            return self.columns
        columns = []
        for v in self.func_kwargs.values():
            names = v if isinstance(v, (list, tuple)) else [v]
            for name in names:
                if isinstance(name, str) and name in data.columns and name not in columns:
                    columns.append(name)
        return columns

    def evaluate(self, data:pd.DataFrame)->pd.Series:
        """
        Applies func to every row

        returns: pd.Series of bool, False where the row fails the check
        """
        if len(data)==0:
            return pd.Series(dtype=bool)
        results = data.apply(self.func, **self.func_kwargs, axis=1)
        return results.apply(lambda x: True if x is None or pd.isnull(x) else bool(x)).astype(bool)

    def failures(self, data:pd.DataFrame, id_columns=(), issue=None)->pd.DataFrame:
        """
        returns: pd.DataFrame, failing rows with id columns, issue and
            supporting fields
        """
        issue = issue if issue is not None else self.issue
        passfail = self.evaluate(data)
        columns = [c for c in self.supporting_columns(data) if c not in id_columns]
        failed = data.loc[~passfail, list(id_columns)+columns].copy()
        failed.insert(len(id_columns), 'issue', issue)
        return failed


def programming_issue_check(data:pd.DataFrame, checks, id_columns=())->pd.DataFrame:
    '''
    Applies every check and combines the failures.

    checks: dict {issue: programming_check} or list of programming_check
    id_columns: list, record columns reported on every row

    returns: pd.DataFrame, one row per (record, failed check) ordered by
        record then issue. Supporting fields are the union over all checks in
        data column order, blank where a check does not report them.
    '''
    if isinstance(checks, dict):
        checks = [(name, obj) for name, obj in checks.items()]
    else:
        checks = [(obj.issue, obj) for obj in checks]

    id_columns = list(id_columns)
    missing = [c for c in id_columns if c not in data.columns]
    if len(missing)>0:
        raise KeyError(f'id columns not in data: {missing}')

    positions = pd.Series(range(len(data)), index=data.index, name='_row')
    failed = []
    for name, obj in checks:
        if name is None:
            raise ValueError(f'programming check needs an issue name. {obj} provided')
        f = obj.failures(data, id_columns, issue=name)
        f['_row'] = positions[f.index]
        failed.append(f)

    supporting = []
    for f in failed:
        supporting.extend(c for c in f.columns if c not in id_columns+['issue', '_row'] and c not in supporting)
    supporting = [c for c in data.columns if c in supporting]
    columns = id_columns + ['issue'] + supporting

    failed = [f for f in failed if len(f)>0]
    if len(failed)==0:
        return pd.DataFrame(columns=columns)

    combined = pd.concat(failed, axis=0)
    combined = combined.sort_values(['_row', 'issue'], kind='stable')
    return combined.reindex(columns=columns).reset_index(drop=True)


def form_version_current(row, version_column, current_versions):
    '''
    Submission was made on one of the current form versions
    '''
    if type_missing_check(row[version_column]):
        return None
    if not isinstance(current_versions, (list, tuple, set)):
        current_versions = [current_versions]
    return str(row[version_column]) in [str(v) for v in current_versions]


def values_match(row, x, y):
    '''
    Two answers that should agree do, e.g. the unit a crop was produced in
    and the unit it was sold in. Not applicable when either is blank.
    '''
    if type_missing_check(row[x]) or type_missing_check(row[y]):
        return None
    return row[x]==row[y]


def not_flagged(row, column, flagged_values=(1,)):
    '''
    Row was not marked with one of flagged_values, e.g. a wrong-site flag
    '''
    if type_missing_check(row[column]):
        return None
    return row[column] not in flagged_values


def within_range(row, column, min=None, max=None):
    try:
        value = float(row[column])
    except (TypeError, ValueError):
        return None
    if pd.isnull(value):
        return None
    if min is not None and value<min:
        return False
    if max is not None and value>max:
        return False
    return True


def in_choices(row, column, choices):
    if type_missing_check(row[column]):
        return None
    return row[column] in choices


def total_matches(row, total_name, component_names, tolerance=0):
    '''
    compares a value that should be a total against the sum of its components
    '''
    try:
        total = float(row[total_name])
        components = pd.to_numeric(row[component_names], errors='coerce')
    except (TypeError, ValueError):
        return None
    if pd.isnull(total):
        return None
    return abs(total - components.sum()) <= tolerance


def ratio_within(row, x, y, bounds):
    '''
    row[x]/row[y] is inside bounds (lower, upper)
    '''
    try:
        ratio = float(row[x])/float(row[y])
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    if pd.isnull(ratio):
        return None
    return bounds[0] <= ratio <= bounds[1]


def answered_if(row, gate_column, gate_value, follow_up):
    '''
    follow_up is answered whenever gate_column equals gate_value
    '''
    if row[gate_column]!=gate_value:
        return None
    return not type_missing_check(row[follow_up])
