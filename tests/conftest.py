import os
import pytest
import pandas as pd

from survey_diagnostics import loader

TEST_DATA = os.path.join(os.path.dirname(__file__), 'test_data')


@pytest.fixture
def config_folder():
    return TEST_DATA


@pytest.fixture
def survey():
    return loader.load_dataset(os.path.join(TEST_DATA, 'survey.csv'), 'key',
                               enumerator_column='enum_id', unit_column='village',
                               date_column='submission_date', form_version_column='formdef_version')


@pytest.fixture
def villages():
    return loader.load_reference(os.path.join(TEST_DATA, 'villages.csv'), 'village', 'expected')


@pytest.fixture
def small_survey():
    return pd.DataFrame({
        'key': [1001, 1002, 1003, 1004, 3004, 1005, 1006, 1007, 3004, 1008],
        'enum_id': ['E1', 'E1', 'E2', 'E2', 'E1', 'E3', 'E3', 'E2', 'E2', 'E1'],
        'village': ['A', 'A', 'B', 'B', 'A', 'C', 'C', 'B', 'B', 'A'],
        'inc_01': [10, 12, None, 13, 11, 9, 14, 10, 11, None],
    })
