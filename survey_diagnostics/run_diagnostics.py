import os
import sys
import time
import argparse

from survey_diagnostics.diagnostic import diagnostics
from survey_diagnostics.errors import InputNotFoundError, InputFormatError, ExportIOError
from survey_diagnostics.utils import log_and_print


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog='survey-diagnostics',
                                     description='Run data quality checks on a survey dataset and export them to Excel')
    parser.add_argument('config_folder', help='folder with config.json and optionally programming_checks.py')
    parser.add_argument('--output', default=None, help='workbook to write, overrides output_path in config.json')
    parser.add_argument('--parallel', action='store_true', help='run the checks in a thread pool')
    parser.add_argument('--log-folder', default=None,
                        help='folder for run, error and summary logs (default: <config folder>_<yyyymmdd>)')
    parser.add_argument('--debug', action='store_true', help='print the summary report')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    log_folder = args.log_folder
    if log_folder is None:
        today = time.strftime('%Y%m%d', time.localtime())
        log_folder = '_'.join((os.path.normpath(args.config_folder), today))

    try:
        x = diagnostics(config_folder_path=args.config_folder)
        x.run_diagnostics(parallel=args.parallel, log_folder=log_folder)
    except (InputNotFoundError, InputFormatError) as e:
        log_and_print(f'could not load input: {e}', debug=True)
        return 1

    with open(os.path.join(log_folder, 'summary.log'), 'w') as SUMMARY_LOG:
        x.summary_report(logger=SUMMARY_LOG, debug=args.debug)

    try:
        path = x.export(args.output)
    except ExportIOError as e:
        log_and_print(str(e), debug=True)
        return 2

    for check in x.failed_checks:
        log_and_print(f'check failed: {check}: {x.failures.get(check)}', debug=True)
    log_and_print(f'Done. {path}', debug=True)
    return 0


if __name__ == '__main__':
    sys.exit(main())
