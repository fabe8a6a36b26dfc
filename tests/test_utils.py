"""
Tests for logging helpers and the error collecting decorator.
"""

import io
import json
import numpy as np
import pandas as pd

from survey_diagnostics.utils import logErrors, log_and_print, NpEncoder, type_missing_check


def test_log_errors_collects_and_continues():
    log = io.StringIO()
    error_dict = {}
    failures = {}

    @logErrors(log, error_dict, failures)
    def broken_check():
        raise KeyError('inc_99')

    assert broken_check() is None
    assert broken_check() is None
    assert error_dict == {'KeyError': {"'inc_99'"}}
    assert failures == {'broken_check': "KeyError: 'inc_99'"}
    assert log.getvalue().count('broken_check') == 1


def test_log_errors_passes_results_through():
    @logErrors(None, {})
    def working_check(x):
        return x * 2

    assert working_check(4) == 8


def test_log_and_print_formats():
    log = io.StringIO()
    log_and_print('plain', logger=log)
    log_and_print({'a': 1}, logger=log)
    log_and_print(pd.DataFrame({'x': [1]}), logger=log)
    text = log.getvalue()
    assert 'plain' in text
    assert 'a : 1' in text
    assert 'x' in text


def test_log_and_print_debug(capsys):
    log_and_print('shown', debug=True)
    log_and_print('hidden')
    out = capsys.readouterr().out
    assert 'shown' in out
    assert 'hidden' not in out


def test_np_encoder():
    payload = {'n': np.int64(3), 'f': np.float64(1.5), 'nan': np.float32('nan'), 'arr': np.array([1, 2]),
               'b': np.bool_(True), 'ts': pd.Timestamp('2024-03-01'), 'nat': pd.NaT, 's': {'b', 'a'}}
    decoded = json.loads(json.dumps(payload, cls=NpEncoder))
    assert decoded == {'n': 3, 'f': 1.5, 'nan': None, 'arr': [1, 2], 'b': True,
                       'ts': '2024-03-01T00:00:00', 'nat': None, 's': ['a', 'b']}


def test_type_missing_check():
    assert type_missing_check('')
    assert type_missing_check('.')
    assert type_missing_check(None)
    assert type_missing_check(np.nan)
    assert not type_missing_check(0)
    assert not type_missing_check('E01')
