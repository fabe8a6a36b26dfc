'''
Column criteria used to validate loaded survey data.

A schema is a dict {column: {criterion_name: criterion}}. Each criterion can
evaluate a single value (True = passes) and enforce it (coerce the value or
return None when it cannot be made to pass).
'''
import os
import json
import numbers
import datetime
import warnings
import pandas as pd
from fuzzywuzzy import process

from survey_diagnostics.utils import type_missing_check


class criterion():
    def __init__(self, criterion, **kwargs):
        '''
        criterion could be a list, int, string, or callable
        '''
        self.criterion = criterion

    def __repr__(self):
        return f'{type(self).__name__}({self.criterion!r})'

    def evaluate(self, value):
        ...

    def enforce(self, value):
        ...


class data_type(criterion):
    def __init__(self, criterion, **kwargs):
        class_translate = {'str': str,
                           'int': numbers.Integral,
                           'float': numbers.Real,
                           'numeric': numbers.Real,
                           'bool': bool,
                           'date': datetime.date,
                           'datetime': datetime.datetime}
        if criterion in class_translate.keys():
            criterion = class_translate[criterion]

        if not isinstance(criterion, type):
            raise TypeError(f'data_type criterion must be a data type class. {type(criterion)} {criterion} provided')
        super().__init__(criterion)

    def evaluate(self, value):
        if pd.isnull(value): return True
        if self.criterion==numbers.Integral and isinstance(value, float):
            # ints are read as floats when the column has missing values
            return value.is_integer()
        return isinstance(value, self.criterion)

    def enforce(self, value):
        if pd.isnull(value): return value
        if self.criterion in (numbers.Integral, numbers.Real):
            try: return pd.to_numeric(value)
            except (TypeError, ValueError): return None
        elif self.criterion==str:
            return str(value)
        elif self.criterion==bool:
            return bool(value)
        elif self.criterion==datetime.datetime:
            try: value = pd.Timestamp(value)
            except (TypeError, ValueError, OverflowError): return None
            if pd.isnull(value): return None
            if value.tzinfo is not None:
                # keep the wall clock time of the submission, Excel has no time zones
                value = value.tz_localize(None)
            return value
        elif self.criterion==datetime.date:
            try: return pd.to_datetime(value).date()
            except (TypeError, ValueError): return None
        return value


class nullable(criterion):
    def __init__(self, criterion, **kwargs):
        if isinstance(criterion, str):
            criterion = criterion.strip().lower() in ('true', '1', 'yes')
        if not isinstance(criterion, bool):
            raise TypeError(f'nullable criterion must be a bool or str bool. {type(criterion)} {criterion} provided')
        super().__init__(criterion)

    def evaluate(self, value):
        if self.criterion:
            return True
        if isinstance(value, str):
            return value.strip()!=''
        return not pd.isnull(value)

    def enforce(self, value):
        return value


class function(criterion):
    ...


class min(function):
    def __init__(self, criterion, **kwargs):
        if not isinstance(criterion, (numbers.Real, datetime.date)):
            raise TypeError(f'min criterion must be a number or date. {type(criterion)} {criterion} provided')
        super().__init__(criterion)

    def evaluate(self, value):
        if pd.isnull(value): return True
        try:
            return value>=self.criterion
        except TypeError:
            return False

    def enforce(self, value):
        if self.evaluate(value):
            return value
        return None


class max(function):
    def __init__(self, criterion, **kwargs):
        if not isinstance(criterion, (numbers.Real, datetime.date)):
            raise TypeError(f'max criterion must be a number or date. {type(criterion)} {criterion} provided')
        super().__init__(criterion)

    def evaluate(self, value):
        if pd.isnull(value): return True
        try:
            return value<=self.criterion
        except TypeError:
            return False

    def enforce(self, value):
        if self.evaluate(value):
            return value
        return None


class max_len(criterion):
    def __init__(self, criterion, **kwargs):
        try:
            criterion = int(criterion)
        except (TypeError, ValueError):
            raise TypeError(f'max_len criterion must be an integer. {type(criterion)} {criterion} provided')
        super().__init__(criterion)

    def evaluate(self, value):
        if pd.isnull(value): return True
        return len(str(value))<=self.criterion

    def enforce(self, value):
        if not self.evaluate(value):
            return str(value)[:self.criterion]
        return value


class category(criterion):
    def __init__(self, criterion, path=None, **kwargs):
        '''
        criterion: list of allowed values, or the name of a .json/.txt file in
            path/category_files holding them
        '''
        if isinstance(criterion, str):
            name = criterion
            if path is None or not os.path.isfile(os.path.join(path, 'category_files', name)):
                raise ValueError(f'Category file not found in category_files. {name} provided')

            ft = name.split('.')[-1]
            if ft=='json':
                with open(os.path.join(path, 'category_files', name), 'r') as f:
                    criterion = json.load(f)
            elif ft=='txt':
                with open(os.path.join(path, 'category_files', name), 'r') as f:
                    criterion = [x.strip() for y in f.readlines() for x in y.split(',') if x.strip()]
            else:
                raise TypeError(f'File type {ft} is not supported currently.')
        super().__init__(list(criterion))

    def evaluate(self, value):
        if len(self.criterion)==0: return True
        if type_missing_check(value): return True
        return value in self.criterion

    def enforce(self, value):
        '''
        Returns value if allowed, else the closest allowed value by fuzzy match,
        else None
        '''
        if len(self.criterion)==0: return value

        if self.evaluate(value):
            return value

        choices = {str(x): x for x in self.criterion}
        bestGuess = process.extractBests(str(value), list(choices), score_cutoff=70, limit=1)
        if len(bestGuess)==0:
            return None

        return choices[bestGuess[0][0]]


CRITERIA_TYPES = {
    'data_type': data_type,
    'nullable': nullable,
    'min': min,
    'max': max,
    'max_len': max_len,
    'category': category,
}


def build_schema(column_criteria:dict, path=None):
    '''
    Converts {column: {criterion_name: raw value}} into a schema dict of
    criterion objects. Unknown criterion names are skipped with a warning.
    '''
    schema_dict = {}
    for column, criteria in column_criteria.items():
        schema_dict[column] = {}
        for crit_type, value in criteria.items():
            if value is None:
                continue
            if crit_type not in CRITERIA_TYPES:
                warnings.warn(f'schema includes not supported criteria_type: {crit_type}')
                continue
            schema_dict[column][crit_type] = CRITERIA_TYPES[crit_type](value, path=path)
    return schema_dict


def enforce_schema(data:pd.DataFrame, schema_dict:dict)->pd.DataFrame:
    '''
    Returns a copy of data with every data_type criterion enforced. Values that
    cannot be coerced become None so evaluate_schema can report them.
    '''
    data = data.copy()
    for column, criteria in schema_dict.items():
        if column not in data.columns or 'data_type' not in criteria:
            continue
        crit = criteria['data_type']
        if crit.criterion==datetime.datetime:
            # value by value so mixed formats and utc offsets in one column all parse
            data[column] = pd.to_datetime(data[column].apply(crit.enforce))
        else:
            data[column] = data[column].apply(crit.enforce)
    return data


def evaluate_schema(data:pd.DataFrame, schema_dict:dict)->dict:
    '''
    Evaluates each criterion against its column

    returns: dict, {(column, criterion_name): [failing index labels]} for
        criteria with at least one failure. A column missing from data is
        reported under the criterion name 'missing_column'.
    '''
    failures = {}
    for column, criteria in schema_dict.items():
        if column not in data.columns:
            failures[(column, 'missing_column')] = []
            continue
        for crit_type, crit in criteria.items():
            passfail = data[column].apply(crit.evaluate).astype(bool)
            failed = data.index[~passfail].tolist()
            if len(failed)>0:
                failures[(column, crit_type)] = failed
    return failures
