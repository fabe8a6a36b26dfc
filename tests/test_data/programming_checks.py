from survey_diagnostics import _programming_checks as pc

CHECK_DICT = {
    'outdated_form': pc.programming_check(
        func=pc.form_version_current,
        func_kwargs={'version_column': 'formdef_version', 'current_versions': [2403]},
    ),
    'unit_mismatch': pc.programming_check(
        func=pc.values_match,
        func_kwargs={'x': 'crop_prod_unit', 'y': 'crop_sale_unit'},
    ),
    'wrong_site': pc.programming_check(
        func=pc.not_flagged,
        func_kwargs={'column': 'wrong_site', 'flagged_values': [1]},
    ),
}
