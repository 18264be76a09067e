import logging
import os
import sys
import tempfile
import unittest
from unittest import mock

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from slitherlink.logger_config import configure_logging, resolve_log_level
from slitherlink.solvers.solver_errors import (
    DEFAULT_MAX_RESTARTS,
    DEFAULT_MAX_STATES,
    GenerationFailedError,
    InvalidInputError,
    SearchCancelledError,
    SlitherlinkError,
    SolverInvariantError,
    resolve_max_restarts,
    resolve_max_states,
    resolve_timeout,
)


class TestLimits(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(resolve_max_states(), DEFAULT_MAX_STATES)
            self.assertIsNone(resolve_timeout())
            self.assertEqual(resolve_max_restarts(), DEFAULT_MAX_RESTARTS)

    def test_environment_overrides(self):
        env = {
            "SLITHERLINK_MAX_STATES": "1234",
            "SLITHERLINK_SOLVER_TIMEOUT": "2.5",
            "SLITHERLINK_MAX_RESTARTS": "7",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertEqual(resolve_max_states(), 1234)
            self.assertEqual(resolve_timeout(), 2.5)
            self.assertEqual(resolve_max_restarts(), 7)

    def test_explicit_wins(self):
        with mock.patch.dict(os.environ, {"SLITHERLINK_MAX_STATES": "1234"}, clear=True):
            self.assertEqual(resolve_max_states(99), 99)

    def test_invalid_values_fall_back(self):
        env = {
            "SLITHERLINK_MAX_STATES": "lots",
            "SLITHERLINK_SOLVER_TIMEOUT": "-1",
            "SLITHERLINK_MAX_RESTARTS": "0",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertEqual(resolve_max_states(), DEFAULT_MAX_STATES)
            self.assertIsNone(resolve_timeout())
            self.assertEqual(resolve_max_restarts(), DEFAULT_MAX_RESTARTS)
            self.assertEqual(resolve_max_states(-5), DEFAULT_MAX_STATES)


class TestErrorTaxonomy(unittest.TestCase):
    def test_hierarchy(self):
        self.assertTrue(issubclass(InvalidInputError, SlitherlinkError))
        self.assertTrue(issubclass(InvalidInputError, ValueError))
        self.assertTrue(issubclass(GenerationFailedError, RuntimeError))
        self.assertTrue(issubclass(SearchCancelledError, RuntimeError))
        self.assertTrue(issubclass(SolverInvariantError, AssertionError))
        self.assertFalse(issubclass(SearchCancelledError, GenerationFailedError))

    def test_error_details(self):
        err = SearchCancelledError(reason="timeout", nodes_visited=10)
        self.assertEqual(err.reason, "timeout")
        self.assertEqual(err.nodes_visited, 10)
        err = GenerationFailedError(attempts=3, grid_size=9)
        self.assertEqual((err.attempts, err.grid_size), (3, 9))


class TestLogging(unittest.TestCase):
    def tearDown(self):
        logger = logging.getLogger("slitherlink")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True

    def test_level_resolution(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(resolve_log_level(), "INFO")
            self.assertEqual(resolve_log_level("debug"), "DEBUG")
            self.assertEqual(resolve_log_level(logging.WARNING), "WARNING")
            self.assertEqual(resolve_log_level("chatty"), "INFO")
        with mock.patch.dict(os.environ, {"SLITHERLINK_LOG_LEVEL": "error"}, clear=True):
            self.assertEqual(resolve_log_level(), "ERROR")

    def test_configure_console(self):
        logger = configure_logging("DEBUG")
        self.assertEqual(logger.name, "slitherlink")
        self.assertEqual(logger.level, logging.DEBUG)
        self.assertEqual(len(logger.handlers), 1)

    def test_configure_error_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "errors.log")
            logger = configure_logging("INFO", log_file=path)
            logging.getLogger("slitherlink.puzzle").error("boom")
            for handler in logger.handlers:
                handler.flush()
            with open(path) as f:
                self.assertIn("boom", f.read())
            self.tearDown()


if __name__ == '__main__':
    unittest.main()
