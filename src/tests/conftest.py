"""Pytest configuration for all tests."""

import os
import sys

# Tests import the top-level packages from src/ the same way launch.py does
SRC_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

# Keep environment overrides from redirecting tests at a real API
for env_name in ('BLAZEBLOG_API_BASE_URL', 'BLAZEBLOG_TENANT_SLUG', 'BLAZEBLOG_DOMAIN',
                 'BLAZEBLOG_VIEWS_COLLECTOR_URL'):
    os.environ.pop(env_name, None)
