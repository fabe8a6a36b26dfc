'''
Reads a diagnostics config folder.

The folder holds config.json and optionally programming_checks.py, a module
defining CHECK_DICT = {issue name: programming_check}. Paths in config.json
are relative to the folder. An optional "schema" key maps columns to extra
criteria ({"hh_size": {"data_type": "int", "max": 30}}); category lists
can be read from files in the folder's category_files/.
'''
import os
import json
import importlib.util

from survey_diagnostics.errors import InputNotFoundError, InputFormatError

CONFIG_FILE = 'config.json'
CHECKS_FILE = 'programming_checks.py'

REQUIRED_KEYS = ['data_path', 'id_column']
PATH_KEYS = ['data_path', 'reference_path', 'output_path']

DEFAULTS = {
    'reference_path': None,
    'output_path': 'data_quality_checks.xlsx',
    'enumerator_column': None,
    'unit_column': None,
    'date_column': None,
    'form_version_column': None,
    'reference_unit_column': None,
    'reference_expected_column': 'expected',
    'display_columns': None,
    'outlier_threshold': 3.0,
    'outlier_checks': [],
    'descriptive_fields': [],
    'group_checks': None,
    'include_inactive': False,
    'schema': {},
}


def default_group_checks(config:dict)->list:
    '''
    enumerator_check for the enumerator column and village_check for the unit
    column, the latter against the reference table when one is configured
    '''
    group_checks = []
    if config['enumerator_column'] is not None:
        group_checks.append({'name': 'enumerator_check', 'column': config['enumerator_column'], 'reference': False})
    if config['unit_column'] is not None:
        group_checks.append({'name': 'village_check', 'column': config['unit_column'],
                             'reference': config['reference_path'] is not None})
    return group_checks


def load_checks(config_folder_path)->dict:
    checks_path = os.path.join(config_folder_path, CHECKS_FILE)
    if not os.path.isfile(checks_path):
        return {}

    spec = importlib.util.spec_from_file_location('programming_checks', checks_path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    if not hasattr(module, 'CHECK_DICT'):
        raise InputFormatError(f'{checks_path} does not define CHECK_DICT')
    return dict(module.CHECK_DICT)


def load_config(config_folder_path)->dict:
    '''
    returns: dict, config.json merged over DEFAULTS with absolute paths, the
        group check list filled in and CHECK_DICT under 'programming_checks'
    '''
    if not os.path.isdir(config_folder_path):
        raise InputNotFoundError(f'config folder not found at {config_folder_path}')
    config_path = os.path.join(config_folder_path, CONFIG_FILE)
    if not os.path.isfile(config_path):
        raise InputNotFoundError(f'{CONFIG_FILE} not found in {config_folder_path}')

    with open(config_path, 'r') as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            raise InputFormatError(f'{config_path} is not valid json: {e}') from e

    missing = [k for k in REQUIRED_KEYS if k not in raw]
    if len(missing)>0:
        raise InputFormatError(f'{config_path} is missing required keys {missing}')

    config = {**DEFAULTS, **raw}
    for k in PATH_KEYS:
        if config[k] is not None:
            config[k] = os.path.join(config_folder_path, config[k])

    if config['reference_path'] is not None and config['reference_unit_column'] is None:
        config['reference_unit_column'] = config['unit_column']
    if config['group_checks'] is None:
        config['group_checks'] = default_group_checks(config)
    for g in config['group_checks']:
        if 'name' not in g or 'column' not in g:
            raise InputFormatError(f'group check needs a name and a column. {g} provided')
        g.setdefault('reference', False)
        g.setdefault('include_inactive', config['include_inactive'])

    if not isinstance(config['schema'], dict):
        raise InputFormatError(f'schema must map columns to criteria. {config["schema"]} provided')
    config['schema_path'] = os.path.abspath(config_folder_path)

    config['programming_checks'] = load_checks(config_folder_path)
    return config
