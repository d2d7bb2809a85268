#!/usr/bin/env python3
"""
Test script for logging setup and operation timing.
"""

import logging
import sys
import tempfile
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent))

from utils import setup_logging, get_logger, log_operation


class ListHandler(logging.Handler):
    """Collects formatted messages for inspection"""

    def __init__(self):
        super().__init__(logging.DEBUG)
        self.messages = []

    def emit(self, record):
        self.messages.append((record.levelno, record.getMessage()))


def test_setup_logging():
    """Test handlers and file output"""
    print("Testing logging setup...")
    with tempfile.TemporaryDirectory() as tmp:
        log_file = Path(tmp) / "logs" / "cookbook.log"
        root = setup_logging("debug", str(log_file), console=False)

        assert root.name == "fridge_cookbook"
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

        get_logger("services.pantry_service").info("Added ingredient 7 to fridge")
        for handler in root.handlers:
            handler.flush()
        assert "Added ingredient 7 to fridge" in log_file.read_text(encoding='utf-8')
        print("[OK] File handler writes module logs")

        root = setup_logging("warning", "", console=True)
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING
        print("[OK] Setup replaces earlier handlers")

    setup_logging("info", "", console=False)


def test_module_loggers():
    logger = get_logger("services.recipe_parser")
    assert logger.name == "fridge_cookbook.services.recipe_parser"
    print("[OK] Module loggers are namespaced")


def test_log_operation():
    """Test timing and outcome messages"""
    logger = get_logger("test_operation")
    logger.setLevel(logging.DEBUG)
    handler = ListHandler()
    logger.addHandler(handler)

    try:
        with log_operation(logger, "Import recipe") as op:
            op.warning("AI extraction failed")
        assert op.duration is not None and op.duration >= 0
        messages = [message for _, message in handler.messages]
        assert messages[0] == "Starting: Import recipe"
        assert messages[1] == "[Import recipe] AI extraction failed"
        assert messages[2].startswith("Completed: Import recipe")
        print("[OK] Operation timed and logged")

        handler.messages.clear()
        try:
            with log_operation(logger, "Save recipe"):
                raise ValueError("disk full")
        except ValueError:
            pass
        level, message = handler.messages[-1]
        assert level == logging.ERROR
        assert message.startswith("Failed: Save recipe") and message.endswith("disk full")
        print("[OK] Failures logged and re-raised")
    finally:
        logger.removeHandler(handler)


if __name__ == "__main__":
    print("=" * 60)
    print("LOGGING TESTS")
    print("=" * 60)

    try:
        test_setup_logging()
        test_module_loggers()
        test_log_operation()
        print("\n[SUCCESS] All logging tests passed!")
        sys.exit(0)
    except AssertionError as e:
        print(f"[FAIL] Logging test failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
