"""Tests for concurrent upstream calls."""

import threading
import unittest

from blazeblog.errors import ApiError, ApiConnectionError
from storefront.fanout import gather


class TestGather(unittest.TestCase):
    """Test result collection, fallbacks and error propagation."""

    def test_results_keyed_by_name(self):
        results = gather({'a': lambda: 1, 'b': lambda: 'two'})
        self.assertEqual(results, {'a': 1, 'b': 'two'})

    def test_empty(self):
        self.assertEqual(gather({}), {})

    def test_calls_run_concurrently(self):
        barrier = threading.Barrier(2, timeout=5)

        def wait():
            barrier.wait()
            return True

        self.assertEqual(gather({'a': wait, 'b': wait}), {'a': True, 'b': True})

    def test_fallback_used_for_failed_call(self):
        def fail():
            raise ApiConnectionError("down")

        results = gather({'config': fail, 'posts': lambda: [1]}, fallbacks={'config': None})
        self.assertEqual(results, {'config': None, 'posts': [1]})

    def test_failure_without_fallback_raises(self):
        def fail():
            raise ApiError(500, 'Server Error')

        with self.assertRaises(ApiError):
            gather({'posts': fail, 'config': lambda: {}})

    def test_first_failure_in_call_order_wins(self):
        def fail_first():
            raise ApiError(404, 'Not Found')

        def fail_second():
            raise ApiConnectionError("down")

        with self.assertRaises(ApiError):
            gather({'first': fail_first, 'second': fail_second})

    def test_other_calls_finish_before_raising(self):
        finished = []

        def fail():
            raise ApiError(500, 'Server Error')

        def slow():
            finished.append('slow')
            return 'done'

        with self.assertRaises(ApiError):
            gather({'fail': fail, 'slow': slow})
        self.assertEqual(finished, ['slow'])


if __name__ == '__main__':
    unittest.main()
