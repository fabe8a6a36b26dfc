import pandas as pd

from survey_diagnostics.outliers import numeric, DDOF
from survey_diagnostics.utils import type_missing_check

STATS = ['count', 'mean', 'median', 'sd', 'min', 'max']


def normalize_fields(fields)->list:
    '''
    Accepts a list of names, a list of (name, label) pairs or a dict
    {name: label}. Returns a list of (name, label).
    '''
    if isinstance(fields, dict):
        return [(k, v) for k, v in fields.items()]
    normalized = []
    for f in fields:
        if isinstance(f, str):
            normalized.append((f, f))
        else:
            name, label = f
            normalized.append((name, label))
    return normalized


def summarize(column_data:pd.Series)->dict:
    '''
    count of answered (non-missing) values, text answers included, then
    mean, median, sd, min and max of the numeric ones. All but the count are
    NaN when no numeric value is left.
    '''
    count = int((~column_data.apply(type_missing_check).astype(bool)).sum())
    values = numeric(column_data).dropna()
    if len(values)==0:
        return {'count': count, 'mean': float('nan'), 'median': float('nan'), 'sd': float('nan'),
                'min': float('nan'), 'max': float('nan')}
    return {
        'count': count,
        'mean': values.mean(),
        'median': values.median(),
        'sd': values.std(ddof=DDOF),
        'min': values.min(),
        'max': values.max(),
    }


def descriptive_stats(data:pd.DataFrame, fields)->pd.DataFrame:
    '''
    One row per field with count, mean, median, sd, min and max
    '''
    fields = normalize_fields(fields)
    missing = [name for name, _ in fields if name not in data.columns]
    if len(missing)>0:
        raise KeyError(f'descriptive fields not in data: {missing}')

    rows = []
    for name, label in fields:
        rows.append({'variable': name, 'label': label, **summarize(data[name])})
    return pd.DataFrame(rows, columns=['variable', 'label'] + STATS)
