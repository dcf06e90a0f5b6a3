# ========================
# tests/test_main.py
# ========================

import unittest
import sys
import os
from unittest import mock

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import main
from src.utils.logging_setup import setup_logging


class TestMainEntryPoint(unittest.TestCase):

    def test_unknown_log_level_exits_with_failure(self):
        with mock.patch.dict(os.environ, {'LOG_LEVEL': 'verbose'}, clear=True), \
                mock.patch.object(main, 'setup_logging') as mock_setup, \
                mock.patch.object(main, 'TripDataPipeline') as mock_pipeline:
            exit_code = main.main([])

        self.assertEqual(exit_code, 1)
        self.assertEqual(mock_setup.call_args.kwargs['log_level'], 'INFO')
        mock_pipeline.assert_not_called()


class TestLoggingSetup(unittest.TestCase):

    def test_unknown_level_raises_value_error(self):
        with self.assertRaises(ValueError):
            setup_logging(log_level='verbose')


if __name__ == '__main__':
    unittest.main()
