#!/usr/bin/env python
"""
Test runner script for the full backend suite
Usage: python Doc/run_tests.py (from the repository root)
"""
import os
import sys
from pathlib import Path

import django
from django.conf import settings
from django.test.utils import get_runner

if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    failures = test_runner.run_tests([
        'backend.core',
        'backend.catalog',
        'backend.sales',
        'backend.purchasing',
        'backend.reports',
        'backend.client',
    ])
    sys.exit(bool(failures))
