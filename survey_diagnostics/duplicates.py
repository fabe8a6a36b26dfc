'''
Duplicate identifier review and remediation.
'''
import pandas as pd

from survey_diagnostics.errors import MissingIdentifierError
from survey_diagnostics.utils import type_missing_check


def check_identifiers(data:pd.DataFrame, id_column:str):
    missing = data[id_column].apply(type_missing_check).astype(bool)
    if missing.any():
        positions = data.index.get_indexer(data.index[missing])
        raise MissingIdentifierError(id_column, [int(p)+1 for p in positions])


def differing_columns(dup_df:pd.DataFrame, skip:list=())->str:
    """
    Compares the rows of one group of suspected duplicates

    returns: str, comma separated columns whose values are not the same
        across the group
    """
    differ = []
    for c in dup_df.columns:
        if c in skip:
            continue
        values = dup_df[c].apply(lambda x: None if type_missing_check(x) else x)
        if values.astype(str).nunique(dropna=False)>1:
            differ.append(c)
    return ', '.join(differ)


def duplicate_check(data:pd.DataFrame, id_column:str, display_columns:list=None)->pd.DataFrame:
    '''
    Finds records sharing an identifier.

    display_columns: list, columns shown for each colliding record, typically
        enumerator, unit and outcome fields. Defaults to every column.

    returns: pd.DataFrame, one row per colliding record ordered by identifier
        (first appearance) then row order, with the group size, the 1-based
        row number in the source and the columns that differ within the group
    '''
    check_identifiers(data, id_column)
    if display_columns is None:
        display_columns = [c for c in data.columns if c!=id_column]
    display_columns = [c for c in display_columns if c!=id_column]
    missing = [c for c in display_columns if c not in data.columns]
    if len(missing)>0:
        raise KeyError(f'display columns not in data: {missing}')

    columns = [id_column, 'duplicate_count', 'row_number'] + display_columns + ['differing_columns']

    dup_mask = data[id_column].duplicated(keep=False)
    if not dup_mask.any():
        return pd.DataFrame(columns=columns)

    dup_review = data.loc[dup_mask, [id_column]+display_columns].copy()
    dup_review['row_number'] = data.index.get_indexer(dup_review.index) + 1
    dup_review['duplicate_count'] = dup_review.groupby(id_column, sort=False)[id_column].transform('size')

    compared = {}
    for descriptor, group in data.loc[dup_mask].groupby(id_column, sort=False):
        compared[descriptor] = differing_columns(group, skip=[id_column])
    dup_review['differing_columns'] = dup_review[id_column].map(compared)

    order = pd.Series(pd.factorize(dup_review[id_column])[0], index=dup_review.index)
    dup_review = dup_review.assign(_order=order).sort_values(['_order', 'row_number'], kind='stable')
    return dup_review[columns].reset_index(drop=True)


def remediate_duplicates(data:pd.DataFrame, id_column:str, keep_original:bool=True)->pd.DataFrame:
    '''
    Returns a working copy where every duplicated identifier is replaced by
    id_1, id_2, ... in original row order. Unique identifiers are untouched.
    A generated id that already exists in the data is skipped so the result
    is always unique. The input frame is not modified.

    keep_original: bool, add <id_column>_original with the value before renaming
    '''
    check_identifiers(data, id_column)
    working = data.copy()
    if keep_original:
        working[f'{id_column}_original'] = data[id_column]

    dup_mask = data[id_column].duplicated(keep=False)
    if not dup_mask.any():
        return working

    working[id_column] = working[id_column].astype(object)
    taken = set(data[id_column].astype(str))
    counters = {}
    for idx in data.index[dup_mask]:
        base = str(data.at[idx, id_column])
        n = counters.get(base, 0)
        while True:
            n += 1
            candidate = f'{base}_{n}'
            if candidate not in taken:
                break
        counters[base] = n
        taken.add(candidate)
        working.at[idx, id_column] = candidate

    return working
