'''
Outlier detection for numeric survey fields.

Three methods are available per field:
* sd: mean +/- threshold standard deviations (population sd)
* absolute: fixed [min, max] bounds
* iqr: medcouple adjusted box plot (https://en.wikipedia.org/wiki/Box_plot#Variations)
'''
import warnings
import numpy as np
import pandas as pd
from statsmodels.stats.stattools import medcouple

from survey_diagnostics.errors import StatisticalDegeneracyWarning

DEFAULT_THRESHOLD = 3.0
DDOF = 0
METHODS = ('sd', 'absolute', 'iqr')

OUTLIER_COLUMNS = ['field', 'value', 'mean', 'sd', 'lower_bound', 'upper_bound', 'method']


def numeric(column_data:pd.Series)->pd.Series:
    return pd.to_numeric(column_data, errors='coerce')


def sd_bounds(column_data:pd.Series, threshold=DEFAULT_THRESHOLD):
    mean = column_data.mean()
    sd = column_data.std(ddof=DDOF)
    return mean-threshold*sd, mean+threshold*sd


def adjusted_iqr_bounds(column_data:pd.Series):
    # Uses medcouple adjusted outlier detection (p25-IQ, p75+IQ)
    non_nans = column_data.dropna().to_numpy(dtype=float)
    p25 = column_data.quantile(q=0.25)
    p75 = column_data.quantile(q=0.75)
    mc = float(medcouple(non_nans))

    if mc >=0:
        lower = p25-1.5*np.exp(-4*mc)*abs(p75-p25)
        upper = p75+1.5*np.exp(3*mc)*abs(p75-p25)
    else:
        lower = p25-1.5*np.exp(-3*mc)*abs(p75-p25)
        upper = p75+1.5*np.exp(4*mc)*abs(p75-p25)
    return lower, upper


def normalize_outlier_config(entry, threshold=DEFAULT_THRESHOLD)->dict:
    '''
    Accepts a field name or a dict {field, method, threshold, bounds} and
    returns the full dict
    '''
    if isinstance(entry, str):
        entry = {'field': entry}
    else:
        entry = dict(entry)
    if 'field' not in entry:
        raise ValueError(f'outlier check needs a field. {entry} provided')

    if 'bounds' in entry and 'method' not in entry:
        entry['method'] = 'absolute'
    entry.setdefault('method', 'sd')
    entry.setdefault('threshold', threshold)

    if entry['method'] not in METHODS:
        raise ValueError(f'outlier method must be one of {METHODS}. {entry["method"]} provided')
    if entry['method']=='absolute':
        bounds = entry.get('bounds')
        if bounds is None or len(bounds)!=2:
            raise ValueError(f'absolute outlier check on {entry["field"]} needs bounds [min, max]')
        entry['bounds'] = (bounds[0], bounds[1])
    if entry['method']=='sd' and not entry['threshold']>0:
        raise ValueError(f'outlier threshold must be positive. {entry["threshold"]} provided')
    return entry


def field_outliers(data:pd.DataFrame, config:dict, id_columns=())->pd.DataFrame:
    '''
    Flags the records of one field outside its bounds

    returns: pd.DataFrame, flagged rows in record order, empty when the field
        is skipped
    '''
    field = config['field']
    columns = list(id_columns) + OUTLIER_COLUMNS
    column_data = numeric(data[field])

    if column_data.notnull().sum()==0:
        warnings.warn(f'{field} has no non-missing numeric values, skipped', StatisticalDegeneracyWarning)
        return pd.DataFrame(columns=columns)

    mean = column_data.mean()
    sd = column_data.std(ddof=DDOF)
    method = config['method']

    if method=='sd':
        if sd==0 or pd.isnull(sd):
            warnings.warn(f'{field} has zero variance, no outliers flagged', StatisticalDegeneracyWarning)
            return pd.DataFrame(columns=columns)
        lower, upper = sd_bounds(column_data, config['threshold'])
        flagged = (column_data-mean).abs() > config['threshold']*sd
    elif method=='absolute':
        lower, upper = config['bounds']
        flagged = (column_data<lower) | (column_data>upper)
    else:
        if column_data.notnull().sum()<2:
            warnings.warn(f'{field} needs at least two values for the adjusted box plot, skipped', StatisticalDegeneracyWarning)
            return pd.DataFrame(columns=columns)
        lower, upper = adjusted_iqr_bounds(column_data)
        flagged = (column_data<lower) | (column_data>upper)

    flagged = flagged & column_data.notnull()
    result = data.loc[flagged, list(id_columns)].copy()
    result['field'] = field
    result['value'] = column_data[flagged]
    result['mean'] = mean
    result['sd'] = sd
    result['lower_bound'] = lower
    result['upper_bound'] = upper
    result['method'] = method
    return result[columns]


def outlier_check(data:pd.DataFrame, fields:list, threshold=DEFAULT_THRESHOLD, id_columns=())->pd.DataFrame:
    '''
    Runs the configured outlier checks.

    fields: list, field names or dicts {field, method, threshold, bounds}
    threshold: float, default number of standard deviations for sd checks
    id_columns: list, record columns reported with each flag

    returns: pd.DataFrame, one row per flagged (record, field) pair ordered by
        field then record
    '''
    configs = [normalize_outlier_config(f, threshold) for f in fields]
    missing = [c['field'] for c in configs if c['field'] not in data.columns]
    if len(missing)>0:
        raise KeyError(f'outlier fields not in data: {missing}')

    results = [field_outliers(data, c, id_columns) for c in configs]
    results = [r for r in results if len(r)>0]
    if len(results)==0:
        return pd.DataFrame(columns=list(id_columns)+OUTLIER_COLUMNS)
    return pd.concat(results, axis=0).reset_index(drop=True)
