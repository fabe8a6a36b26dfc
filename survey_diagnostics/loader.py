'''
Reads the survey dataset and the administrative-unit reference table.

Any failure here is fatal for the run: no check can proceed without the data.
'''
import os
import pandas as pd

from survey_diagnostics import schema
from survey_diagnostics.errors import InputNotFoundError, InputFormatError, MissingIdentifierError
from survey_diagnostics.utils import type_missing_check

READERS = {
    '.csv': pd.read_csv,
    '.xlsx': pd.read_excel,
    '.xls': pd.read_excel,
    '.dta': pd.read_stata,
}


def record_numbers(data:pd.DataFrame, index_labels)->list:
    '''
    Converts index labels into 1-based record numbers (first data row is 1)
    '''
    positions = data.index.get_indexer(index_labels)
    return [int(p)+1 for p in positions]


def read_table(path)->pd.DataFrame:
    path = os.fspath(path)
    if not os.path.isfile(path):
        raise InputNotFoundError(f'input not found at {path}')

    ext = os.path.splitext(path)[1].lower()
    if ext not in READERS:
        raise InputFormatError(f'{path}: file type {ext} is not supported. Use one of {sorted(READERS)}')

    try:
        return READERS[ext](path)
    except OSError as e:
        raise InputNotFoundError(f'could not open {path}: {e}') from e
    except (ValueError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise InputFormatError(f'could not parse {path}: {e}') from e


def check_schema(data:pd.DataFrame, schema_dict:dict, source):
    '''
    Raises InputFormatError listing every failed criterion, with spreadsheet
    record numbers
    '''
    failures = schema.evaluate_schema(data, schema_dict)
    if len(failures)==0:
        return

    problems = []
    for (column, crit_type), idx in failures.items():
        if crit_type=='missing_column':
            problems.append(f'required column {column} is missing')
        else:
            problems.append(f'{column} fails {crit_type} ({schema_dict[column][crit_type].criterion}) at rows {record_numbers(data, idx)}')
    raise InputFormatError(f'{source}: ' + '; '.join(problems))


def required_criteria(enumerator_column=None, unit_column=None, date_column=None,
                      form_version_column=None, column_criteria=None)->dict:
    '''
    Merges the configured column criteria with the ones every run needs.
    Enumerator and unit must be non-blank, the date a timestamp. The required
    criteria win over configured ones on the same column.
    '''
    merged = {c: dict(v) for c, v in (column_criteria or {}).items()}
    for column in (enumerator_column, unit_column, form_version_column):
        if column is not None:
            merged.setdefault(column, {})['nullable'] = column==form_version_column
    if date_column is not None:
        merged.setdefault(date_column, {}).update({'data_type': 'datetime', 'nullable': False})
    return merged


def validate_dataset(data:pd.DataFrame, id_column, enumerator_column=None, unit_column=None,
                     date_column=None, form_version_column=None, column_criteria=None,
                     schema_path=None, source='data')->pd.DataFrame:
    '''
    Validates survey submissions already in memory.

    The identifier must be present on every row, enumerator, unit and date
    columns (when configured) must be non-blank, and the date column must
    parse as a timestamp. Timestamps with a utc offset keep their local wall
    clock time. column_criteria adds {column: {criterion_name: value}} checks
    (data_type, nullable, min, max, max_len, category); category files are
    looked up in schema_path/category_files.

    returns: pd.DataFrame, a copy with data_type columns coerced and a fresh
        RangeIndex
    '''
    data = data.reset_index(drop=True)

    if id_column not in data.columns:
        raise InputFormatError(f'{source}: required column {id_column} is missing')
    blank_ids = data[id_column].apply(type_missing_check).astype(bool)
    if blank_ids.any():
        raise MissingIdentifierError(id_column, record_numbers(data, data.index[blank_ids]))

    criteria = required_criteria(enumerator_column, unit_column, date_column, form_version_column, column_criteria)
    try:
        schema_dict = schema.build_schema(criteria, path=schema_path)
    except (TypeError, ValueError) as e:
        raise InputFormatError(f'{source}: invalid column criteria: {e}') from e

    missing = [c for c in schema_dict if c not in data.columns]
    if len(missing)>0:
        raise InputFormatError(f'{source}: required columns {missing} are missing')

    enforced = schema.enforce_schema(data, schema_dict)
    for column, column_schema in schema_dict.items():
        if 'data_type' not in column_schema:
            continue
        bad = enforced[column].isnull() & ~data[column].apply(type_missing_check).astype(bool)
        if bad.any():
            raise InputFormatError(f'{source}: {column} could not be parsed as {criteria[column]["data_type"]} '
                                   f'at rows {record_numbers(data, data.index[bad])}')

    check_schema(enforced, schema_dict, source)
    return enforced


def load_dataset(path, id_column, enumerator_column=None, unit_column=None, date_column=None,
                 form_version_column=None, column_criteria=None, schema_path=None)->pd.DataFrame:
    '''
    Loads the survey submissions and validates them with validate_dataset

    returns: pd.DataFrame, one row per submission in file order
    '''
    return validate_dataset(read_table(path), id_column, enumerator_column=enumerator_column,
                            unit_column=unit_column, date_column=date_column,
                            form_version_column=form_version_column, column_criteria=column_criteria,
                            schema_path=schema_path, source=path)


def load_reference(path, unit_column, expected_column)->pd.Series:
    '''
    Loads the expected number of submissions per geographic unit

    returns: pd.Series, expected counts indexed by unit
    '''
    reference = read_table(path)

    schema_dict = schema.build_schema({
        unit_column: {'nullable': False},
        expected_column: {'data_type': 'numeric', 'nullable': False, 'min': 0},
    })
    missing = [c for c in schema_dict if c not in reference.columns]
    if len(missing)>0:
        raise InputFormatError(f'{path}: required columns {missing} are missing')

    expected = pd.to_numeric(reference[expected_column], errors='coerce')
    bad = expected.isnull() & reference[expected_column].notnull()
    if bad.any():
        raise InputFormatError(f'{path}: {expected_column} is not numeric at rows {record_numbers(reference, reference.index[bad])}')
    reference[expected_column] = expected
    check_schema(reference, schema_dict, path)

    dups = reference[unit_column].duplicated(keep=False)
    if dups.any():
        raise InputFormatError(f'{path}: {unit_column} repeated at rows {record_numbers(reference, reference.index[dups])}')

    return reference.set_index(unit_column)[expected_column].rename('expected')
