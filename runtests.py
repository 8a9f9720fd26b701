# coding=utf-8

"""
Test runner.

Runs the doctest examples of every module of the project, then every test_*
function of the *_test.py modules. The same tests also run under pytest.

Copyright (c) 2013, François Jeannotte.
"""

import doctest
import fnmatch
import importlib
import logging
import os
import os.path as op
import sys
import traceback

script_dir = op.dirname(op.abspath(__file__))

def assert_eq(expected, actual):
    assert expected == actual, 'expected: {!r}, actual: {!r}'.format(expected,
                                                                     actual)

def assert_fail(msg):
    assert False, msg

def assert_raises(exc_type, func, *args, **kwargs):
    """Call func and return the exc_type exception it must raise."""
    try:
        func(*args, **kwargs)
    except exc_type as ex:
        return ex
    assert_fail('{} not raised by {}'.format(exc_type.__name__,
                                             func.__name__))

def iter_modules(pattern='*.py'):
    for f in sorted(os.listdir(script_dir)):
        if fnmatch.fnmatch(f, pattern) and op.isfile(op.join(script_dir, f)):
            yield op.splitext(f)[0]

def doctest_all():
    """
    Search for python scripts in same directory, and run doctest examples
    contained within. Returns the number of failures.
    """
    failures = 0
    for name in iter_modules():
        res = doctest.testmod(importlib.import_module(name))
        failures += res.failed
    return failures

def test_all():
    """
    Run every test function of the *_test.py modules. Returns the number of
    failures.
    """
    failures = 0
    for name in iter_modules('*_test.py'):
        mod = importlib.import_module(name)
        for func_name in sorted(dir(mod)):
            func = getattr(mod, func_name)
            if not func_name.startswith('test_') or not callable(func):
                continue
            try:
                func()
            except Exception:
                failures += 1
                print('FAIL {}.{}'.format(name, func_name))
                traceback.print_exc()
    return failures

if __name__ == '__main__':

    # Add a console handler for loggers
    log_handler = logging.StreamHandler()
    log_handler.setFormatter(logging.Formatter('%(asctime)s [%(name)s] '
                                               '%(levelname)s: %(message)s'))
    root_log = logging.getLogger()
    root_log.addHandler(log_handler)
    root_log.setLevel(logging.INFO)

    sys.path.insert(0, script_dir)

    # Run all doctest examples
    print('Running doctest for all modules...')
    failures = doctest_all()
    print('Done.')

    # Run the test modules
    print('Running test modules...')
    failures += test_all()
    print('Done, {} failure(s).'.format(failures))

    sys.exit(1 if failures else 0)
