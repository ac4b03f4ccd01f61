"""Log line formatting."""

import logging
import unittest

from app.core.logging import build_formatter


class TestFormatter(unittest.TestCase):
    def test_timestamps_are_utc(self) -> None:
        record = logging.LogRecord("app", logging.INFO, __file__, 1, "hello", None, None)
        record.created = 0
        line = build_formatter().format(record)
        self.assertTrue(line.startswith("1970-01-01T00:00:00Z INFO app hello"), line)


if __name__ == "__main__":
    unittest.main()
