#!/usr/bin/env python
"""
Test runner script for the repairdesk apps
Usage: python Doc/run_tests.py [app ...]
"""
import os
import sys

import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    'repairdesk.core',
    'repairdesk.clients',
    'repairdesk.services',
    'repairdesk.notifications',
    'repairdesk.catalog',
]

if __name__ == "__main__":
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'repairdesk.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2)
    labels = [f'repairdesk.{name}' for name in sys.argv[1:]] or APPS
    failures = test_runner.run_tests(labels)
    sys.exit(bool(failures))
