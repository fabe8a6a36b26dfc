'''
Writes check results to an Excel workbook, one sheet per check.

The workbook is built in a temporary file next to the target and moved over
it once every sheet is written, so a failed export never leaves a half
written target. A <target>.lock file is held for the whole write.
'''
import os
import re
import shutil
import tempfile
import pandas as pd

from survey_diagnostics.errors import ExportIOError

MAX_SHEET_NAME = 31


def sheet_title(name)->str:
    title = re.sub(r'[\[\]:*?/\\]', '_', str(name))
    return title[:MAX_SHEET_NAME]


def acquire_lock(path):
    lock_path = path + '.lock'
    try:
        return os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY), lock_path
    except FileExistsError as e:
        raise ExportIOError(path, f'{lock_path} exists, the workbook is being written by another export') from e
    except OSError as e:
        raise ExportIOError(path, e) from e


def release_lock(lock, lock_path):
    os.close(lock)
    if os.path.exists(lock_path):
        os.remove(lock_path)


def excel_ready(table:pd.DataFrame)->pd.DataFrame:
    '''
    Drops the time zone of tz-aware datetime columns, keeping local wall
    clock time, since Excel cells cannot hold one
    '''
    aware = [c for c in table.columns if isinstance(table[c].dtype, pd.DatetimeTZDtype)]
    if len(aware)==0:
        return table
    table = table.copy()
    for c in aware:
        table[c] = table[c].dt.tz_localize(None)
    return table


def export_workbook(tables:dict, path, remove_sheets=())->list:
    '''
    Writes every table to its own sheet without the index.

    tables: dict, {sheet name: pd.DataFrame} written in order
    path: target .xlsx. Sheets of an existing workbook that are not in tables
        are kept, sheets with the same name are replaced.
    remove_sheets: sheet names to delete from an existing workbook when they
        are not in tables

    returns: list, sheet titles written
    '''
    path = os.path.abspath(os.fspath(path))
    titles = [sheet_title(name) for name in tables]
    if len(set(titles))!=len(titles):
        raise ExportIOError(path, ValueError(f'sheet names are not unique after truncation: {titles}'))

    directory = os.path.dirname(path)
    if not os.path.isdir(directory):
        raise ExportIOError(path, FileNotFoundError(f'folder {directory} does not exist'))

    lock, lock_path = acquire_lock(path)
    sheets_written = []
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(suffix='.xlsx', prefix='.' + os.path.basename(path) + '.', dir=directory)
        os.close(fd)

        if os.path.isfile(path):
            shutil.copyfile(path, tmp_path)
            writer = pd.ExcelWriter(tmp_path, engine='openpyxl', mode='a', if_sheet_exists='replace')
        else:
            writer = pd.ExcelWriter(tmp_path, engine='openpyxl', mode='w')

        with writer:
            for stale in {sheet_title(name) for name in remove_sheets}:
                if stale not in titles and stale in writer.book.sheetnames:
                    del writer.book[stale]
            for title, table in zip(titles, tables.values()):
                excel_ready(table).to_excel(writer, sheet_name=title, index=False)
                sheets_written.append(title)

        os.replace(tmp_path, path)
        tmp_path = None
    except Exception as e:
        raise ExportIOError(path, e, sheets_written if len(sheets_written)<len(titles) else []) from e
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)
        release_lock(lock, lock_path)

    return sheets_written
