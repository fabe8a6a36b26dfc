'''Version: 01

Runs data quality checks on a field survey dataset and exports the points of
concern to a workbook for review.

The checks are:
* duplicate identifiers, with a working copy where duplicates are renamed
  id_1, id_2, ...
* outliers in numeric fields (standard deviation, absolute bounds or the
  medcouple adjusted box plot)
* descriptive statistics of key fields
* enumerator and village aggregates: submissions per day, field statistics
  and progress against the expected number of submissions
* survey programming issues defined as named row checks (outdated form
  version, inconsistent units, wrong-site flags, ...)

Each check writes its own sheet: duplicate_check, outlier_check,
descriptive_stats, enumerator_check, enumerator_by_day, village_check,
village_by_day, survey_programming_check and check_status.
'''

__version__ = '0.1.0'
