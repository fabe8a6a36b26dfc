import os
import json
import warnings
from concurrent.futures import ThreadPoolExecutor
import pandas as pd

from survey_diagnostics import loader
from survey_diagnostics.config import load_config
from survey_diagnostics.duplicates import duplicate_check, remediate_duplicates
from survey_diagnostics.outliers import outlier_check, DEFAULT_THRESHOLD
from survey_diagnostics.descriptives import descriptive_stats
from survey_diagnostics.groups import group_check
from survey_diagnostics._programming_checks import programming_issue_check
from survey_diagnostics.export import export_workbook
from survey_diagnostics.errors import StatisticalDegeneracyWarning
from survey_diagnostics.utils import logErrors, NpEncoder, log_and_print

DUPLICATE_SHEET = 'duplicate_check'
OUTLIER_SHEET = 'outlier_check'
DESCRIPTIVE_SHEET = 'descriptive_stats'
PROGRAMMING_SHEET = 'survey_programming_check'
STATUS_SHEET = 'check_status'


def by_day_sheet(name):
    if name.endswith('_check'):
        return name[:-len('_check')] + '_by_day'
    return name + '_by_day'


class diagnostics():
    '''
    Runs every configured data quality check on one survey snapshot and
    exports the results.

    Either pass config_folder_path (config.json + programming_checks.py) or
    the data and settings directly. A failing check is recorded in
    check_status and error_dict while the other checks still run; a problem
    with the data itself stops the run.
    '''
    def __init__(self, config_folder_path=None, base_data:pd.DataFrame=None, reference:pd.Series=None,
                 id_column:str=None, enumerator_column:str=None, unit_column:str=None, date_column:str=None,
                 form_version_column:str=None,
                 display_columns:list=None, outlier_checks:list=(), outlier_threshold=DEFAULT_THRESHOLD,
                 descriptive_fields=(), group_checks:list=None, programming_checks:dict=None,
                 column_criteria:dict=None, schema_path=None, output_path=None, name=None, **kwargs):

        self.config_folder_path = config_folder_path
        if config_folder_path is not None:
            self.load_config_folder(config_folder_path)
        else:
            if base_data is None or id_column is None:
                raise ValueError('base_data and id_column are required without a config folder')
            self.name = name
            self.base_data = base_data
            self.reference = reference
            self.id_column = id_column
            self.enumerator_column = enumerator_column
            self.unit_column = unit_column
            self.date_column = date_column
            self.form_version_column = form_version_column
            self.display_columns = display_columns
            self.outlier_checks = list(outlier_checks)
            self.outlier_threshold = outlier_threshold
            self.descriptive_fields = descriptive_fields
            self.group_checks = group_checks if group_checks is not None else self.default_group_checks()
            self.programming_checks = programming_checks or {}
            self.column_criteria = column_criteria or {}
            self.schema_path = schema_path
            self.output_path = output_path

        self.working_data = None
        self.results = {}       # {sheet name: check result}
        self.status = []        # [{check, status, rows, reason}]
        self.error_dict = {}    # {exception type: {messages}}
        self.failures = {}      # {check name: reason}
        self.degeneracies = []

    def default_group_checks(self):
        group_checks = []
        if self.enumerator_column is not None:
            group_checks.append({'name': 'enumerator_check', 'column': self.enumerator_column})
        if self.unit_column is not None:
            group_checks.append({'name': 'village_check', 'column': self.unit_column,
                                 'reference': self.reference is not None})
        return group_checks

    def load_config_folder(self, config_folder_path, **kwargs):
        config = load_config(config_folder_path)
        self.name = os.path.basename(os.path.normpath(config_folder_path))
        self.base_data = loader.load_dataset(config['data_path'], config['id_column'],
                                             enumerator_column=config['enumerator_column'],
                                             unit_column=config['unit_column'],
                                             date_column=config['date_column'],
                                             form_version_column=config['form_version_column'],
                                             column_criteria=config['schema'],
                                             schema_path=config['schema_path'])
        self.reference = None
        if config['reference_path'] is not None:
            self.reference = loader.load_reference(config['reference_path'],
                                                   config['reference_unit_column'],
                                                   config['reference_expected_column'])

        self.id_column = config['id_column']
        self.enumerator_column = config['enumerator_column']
        self.unit_column = config['unit_column']
        self.date_column = config['date_column']
        self.display_columns = config['display_columns']
        self.outlier_checks = config['outlier_checks']
        self.outlier_threshold = config['outlier_threshold']
        self.descriptive_fields = config['descriptive_fields']
        self.group_checks = config['group_checks']
        self.programming_checks = config['programming_checks']
        self.column_criteria = config['schema']
        self.schema_path = config['schema_path']
        self.form_version_column = config['form_version_column']
        self.output_path = config['output_path']

    @property
    def id_columns(self):
        return [c for c in (self.id_column, self.enumerator_column, self.unit_column) if c is not None]

    def duplicate_display_columns(self):
        columns = [c for c in (self.enumerator_column, self.unit_column, self.date_column) if c is not None]
        for c in self.display_columns or []:
            if c not in columns:
                columns.append(c)
        return columns

    def check_tasks(self, ERROR_LOG):
        '''
        returns: list, (check name, function) pairs. Each function returns
            {sheet name: result} or None when it failed
        '''
        def isolated(name, f):
            f.__name__ = name
            return logErrors(ERROR_LOG, self.error_dict, self.failures)(f)

        tasks = []

        def duplicates():
            return {DUPLICATE_SHEET: duplicate_check(self.base_data, self.id_column,
                                                     display_columns=self.duplicate_display_columns())}
        tasks.append((DUPLICATE_SHEET, isolated(DUPLICATE_SHEET, duplicates)))

        if len(self.outlier_checks)>0:
            def outliers():
                return {OUTLIER_SHEET: outlier_check(self.working_data, self.outlier_checks,
                                                     threshold=self.outlier_threshold, id_columns=self.id_columns)}
            tasks.append((OUTLIER_SHEET, isolated(OUTLIER_SHEET, outliers)))

        if len(self.descriptive_fields)>0:
            def descriptives():
                return {DESCRIPTIVE_SHEET: descriptive_stats(self.working_data, self.descriptive_fields)}
            tasks.append((DESCRIPTIVE_SHEET, isolated(DESCRIPTIVE_SHEET, descriptives)))

        for g in self.group_checks:
            def groups(g=g):
                reference = self.reference if g.get('reference') else None
                if g.get('reference') and reference is None:
                    raise ValueError(f'{g["name"]} needs a reference table but none was loaded')
                result = group_check(self.working_data, g['column'], date_column=self.date_column,
                                     stats_fields=self.descriptive_fields, reference=reference,
                                     include_inactive=g.get('include_inactive', False))
                tables = {g['name']: result.summary}
                if result.by_day is not None:
                    tables[by_day_sheet(g['name'])] = result.by_day
                return tables
            tasks.append((g['name'], isolated(g['name'], groups)))

        if len(self.programming_checks)>0:
            def programming():
                return {PROGRAMMING_SHEET: programming_issue_check(self.working_data, self.programming_checks,
                                                                   id_columns=self.id_columns)}
            tasks.append((PROGRAMMING_SHEET, isolated(PROGRAMMING_SHEET, programming)))

        return tasks

    def run_diagnostics(self, parallel=False, log_folder=None, max_workers=None, **kwargs):
        '''
        Runs all checks on the snapshot. Duplicate identifiers are renamed
        id_1, id_2, ... in the working copy handed to every other check.

        parallel: bool, run the checks in a thread pool
        log_folder: folder for run_log.log, error_log.log and error.json

        returns: dict, {sheet name: pd.DataFrame} including check_status
        '''
        LOG_FILE = None
        ERROR_LOG = None
        if log_folder is not None:
            os.makedirs(log_folder, exist_ok=True)
            LOG_FILE = open(os.path.join(log_folder, 'run_log.log'), 'w')
            ERROR_LOG = open(os.path.join(log_folder, 'error_log.log'), 'w')

        try:
            log_and_print(f'{len(self.base_data)} records, {len(self.base_data.columns)} variables', logger=LOG_FILE)
            self.base_data = loader.validate_dataset(self.base_data, self.id_column,
                                                     enumerator_column=self.enumerator_column,
                                                     unit_column=self.unit_column,
                                                     date_column=self.date_column,
                                                     form_version_column=self.form_version_column,
                                                     column_criteria=self.column_criteria,
                                                     schema_path=self.schema_path)
            self.working_data = remediate_duplicates(self.base_data, self.id_column)

            self.results = {}
            self.status = []
            self.failures.clear()
            self.degeneracies = []
            tasks = self.check_tasks(ERROR_LOG)

            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter('always', StatisticalDegeneracyWarning)
                if parallel:
                    with ThreadPoolExecutor(max_workers=max_workers) as pool:
                        futures = [(name, pool.submit(f)) for name, f in tasks]
                        outputs = [(name, future.result()) for name, future in futures]
                else:
                    outputs = [(name, f()) for name, f in tasks]

            for w in caught:
                if issubclass(w.category, StatisticalDegeneracyWarning):
                    self.degeneracies.append(str(w.message))
                    log_and_print(f'warning: {w.message}', logger=LOG_FILE)
                else:
                    warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)

            for name, tables in outputs:
                if tables is None:
                    self.status.append({'check': name, 'status': 'failed', 'rows': None,
                                        'reason': self.failures.get(name, 'unknown error')})
                    log_and_print(f'{name} failed: {self.failures.get(name)}', logger=LOG_FILE)
                    continue
                self.results.update(tables)
                rows = len(tables[name]) if name in tables else sum(len(t) for t in tables.values())
                reason = '; '.join(self.degeneracies) if name==OUTLIER_SHEET else ''
                self.status.append({'check': name, 'status': 'ok', 'rows': rows, 'reason': reason})
                log_and_print(f'{name}: {rows} rows', logger=LOG_FILE)

            self.results[STATUS_SHEET] = pd.DataFrame(self.status, columns=['check', 'status', 'rows', 'reason'])
        finally:
            if ERROR_LOG is not None:
                ERROR_LOG.close()
                self.export_errors(os.path.join(log_folder, 'error.json'))
            if LOG_FILE is not None:
                LOG_FILE.close()

        return self.results

    @property
    def failed_checks(self):
        return [s['check'] for s in self.status if s['status']=='failed']

    def check_sheets(self):
        '''
        returns: list, every sheet a check of this pipeline can write,
            including the default group checks
        '''
        group_names = [g['name'] for g in self.group_checks]
        group_names += [n for n in ('enumerator_check', 'village_check') if n not in group_names]
        sheets = [DUPLICATE_SHEET, OUTLIER_SHEET, DESCRIPTIVE_SHEET]
        for name in group_names:
            sheets += [name, by_day_sheet(name)]
        return sheets + [PROGRAMMING_SHEET, STATUS_SHEET]

    def export(self, export_path=None):
        '''
        Writes every result to its own sheet of the workbook. Check sheets
        left from an earlier run that produced nothing this time (failed or
        disabled checks) are removed, other sheets are kept.

        returns: str, workbook path
        '''
        export_path = export_path or self.output_path
        if export_path is None:
            raise ValueError('no export path given or configured')
        if len(self.results)==0:
            raise ValueError('run_diagnostics before exporting')
        stale = [s for s in self.check_sheets() if s not in self.results]
        export_workbook(self.results, export_path, remove_sheets=stale)
        log_and_print(f'exported {len(self.results)} sheets to {export_path}')
        return export_path

    def export_errors(self, path):
        with open(path, 'w') as f:
            json.dump(self.error_dict, f, cls=NpEncoder)

    def summary_report(self, logger=None, debug=True):
        """
        Prints summary data for:
            * data size
            * duplicates
            * outliers per field
            * programming issues per check
            * failed checks
        """
        log_and_print('Data Size', debug=debug, logger=logger)
        log_and_print(f'Rows: {len(self.base_data)}', debug=debug, logger=logger)
        log_and_print(f'Vars: {len(self.base_data.columns)}', debug=debug, logger=logger)
        log_and_print('', debug=debug, logger=logger)

        if DUPLICATE_SHEET in self.results:
            dups = self.results[DUPLICATE_SHEET]
            log_and_print(f'Duplicate {self.id_column}: {dups[self.id_column].nunique()} ids, {len(dups)} records',
                          debug=debug, logger=logger)
            log_and_print('', debug=debug, logger=logger)

        if OUTLIER_SHEET in self.results and len(self.results[OUTLIER_SHEET])>0:
            log_and_print('Outliers by field', debug=debug, logger=logger)
            log_and_print(self.results[OUTLIER_SHEET]['field'].value_counts().to_dict(), debug=debug, logger=logger)
            log_and_print('', debug=debug, logger=logger)

        if PROGRAMMING_SHEET in self.results and len(self.results[PROGRAMMING_SHEET])>0:
            log_and_print('Survey programming issues', debug=debug, logger=logger)
            log_and_print(self.results[PROGRAMMING_SHEET]['issue'].value_counts().to_dict(), debug=debug, logger=logger)
            log_and_print('', debug=debug, logger=logger)

        if len(self.failed_checks)>0:
            log_and_print('Failed checks', debug=debug, logger=logger)
            log_and_print({k: v for k, v in self.failures.items()}, debug=debug, logger=logger)
