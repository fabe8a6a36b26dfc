'''
Error kinds raised by the diagnostics pipeline.

Loader and config errors are fatal to a run. Check level errors are collected
by the orchestrator and reported per check. Degenerate statistics are only a
warning.
'''


class DiagnosticsError(Exception):
    '''Base class for all pipeline errors'''


class InputNotFoundError(DiagnosticsError, FileNotFoundError):
    '''Dataset, reference table or config folder could not be reached'''


class InputFormatError(DiagnosticsError, ValueError):
    '''Input is malformed or a required field is missing'''


class MissingIdentifierError(InputFormatError):
    '''
    Records without a unique identifier. Blank ids are never grouped together
    as duplicates of each other.
    '''
    def __init__(self, id_column, rows):
        self.id_column = id_column
        self.rows = list(rows)
        super().__init__(f'{len(self.rows)} records have no {id_column}. rows: {self.rows}')


class StatisticalDegeneracyWarning(UserWarning):
    '''Field skipped because it is all missing or has zero variance'''


class ExportIOError(DiagnosticsError, OSError):
    '''
    Workbook could not be written.

    path: str, target workbook
    cause: Exception, underlying error
    sheets_written: list, sheets already written when the failure happened
    incomplete: bool, True if some but not all sheets had been written
    '''
    def __init__(self, path, cause, sheets_written=None):
        self.path = str(path)
        self.cause = cause
        self.sheets_written = list(sheets_written or [])
        self.incomplete = len(self.sheets_written) > 0
        msg = f'could not write workbook {self.path}: {cause}'
        if self.incomplete:
            msg += f' (incomplete, only {self.sheets_written} written, target left unchanged)'
        super().__init__(msg)
