import json
import inspect
import functools
BASE_DEPTH = len(inspect.stack(0))
import pandas as pd
from io import TextIOBase
import numpy as np
import datetime as dt


def logErrors(error_log_file, error_dict, failures=None, **kwargs):
    '''
    Wrapper that keeps a failing check from stopping the run. The error is
    logged once per distinct message, collected in error_dict as
    {exception type: set(messages)} and, if given, failures[function name] is
    set to the message. The wrapped call then returns None.
    '''
    def decorate(f):
        @functools.wraps(f)
        def applicator(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except Exception as e:
                error_msg = ':'.join((f.__name__, str(e)))
                if type(e).__name__ not in error_dict:
                    error_dict[type(e).__name__] = set()
                if str(e) not in error_dict[type(e).__name__]:
                    log_and_print(error_msg, debug=True, logger=error_log_file)
                error_dict[type(e).__name__].add(str(e))
                if failures is not None:
                    failures[f.__name__] = f'{type(e).__name__}: {e}'
        return applicator
    return decorate


def type_missing_check(val:object)->bool:
    """
    checks if a value is considered "missing". Incorporates Stata missing str format
    """
    if isinstance(val, str):
        return val.strip()=="" or val=="."
    try:
        return bool(pd.isnull(val))
    except (TypeError, ValueError):
        return False


def string_dict(d):
    if len(d)==0:
        yield "{}"
        return

    center = max([len(str(k)) for k in d.keys()]) + 3

    for k, v in d.items():
        left_pad = center - len(str(k))
        line = ' '*left_pad+ '{} : {}'.format(str(k),str(v))+'\n'
        yield line


def log_and_print(msg='', debug=False, debug_level=99, logger=None, end='\n', **kwargs):
    '''
    prints msg to console when debug is set and writes msg to an open log file
    '''
    indent = max(len(inspect.stack(0))-BASE_DEPTH, 0)

    if not isinstance(msg, (str, dict, pd.DataFrame, pd.Series)):
        msg = str(msg)

    if isinstance(msg, str):
        msg = indent*'-' + " " + msg
    elif isinstance(msg, dict):
        msg = ''.join([indent*'-' +" "+x for x in string_dict(msg)]).strip('\n')
    else:
        msg = '\n'.join([indent*'-'+" "+ l for l in msg.to_string().split('\n')])

    if debug and indent<=debug_level:
        print(msg, end=end)

    if not isinstance(logger, TextIOBase) or logger.closed:
        return
    logger.write(msg+'\n')


class NpEncoder(json.JSONEncoder):
    """
    Encoder to export objects that include numpy and pandas types
    """
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return None if np.isnan(obj) else float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.bool_):
            return bool(obj)
        elif obj is pd.NaT or obj is pd.NA:
            return None
        elif isinstance(obj, (dt.datetime, pd.Timestamp, dt.date)):
            return obj.isoformat()
        elif isinstance(obj, set):
            return sorted(obj, key=str)
        else:
            return super(NpEncoder, self).default(obj)
