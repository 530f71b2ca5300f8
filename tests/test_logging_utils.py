"""
Tests for run logging helpers.
"""

import json
import logging

from service_ip_mapper.logging_utils import generate_run_id, log_run_end, log_run_start


class TestRunLogging:
    """Test run start/end log lines."""

    def test_run_end_logs_json_payload(self, caplog):
        logger = logging.getLogger("service_ip_mapper.tests")
        run_id = generate_run_id()

        with caplog.at_level(logging.INFO, logger="service_ip_mapper.tests"):
            log_run_start(logger, run_id, group_name="svc-logs")
            log_run_end(logger, run_id, True, matches=2)

        start, end = caplog.messages
        assert start.startswith(f"Run {run_id} started")
        payload = json.loads(end.split(" - ", 1)[1])
        assert payload == {"run_id": run_id, "status": "SUCCESS", "matches": 2}

    def test_failed_run_records_error(self, caplog):
        logger = logging.getLogger("service_ip_mapper.tests")

        with caplog.at_level(logging.INFO, logger="service_ip_mapper.tests"):
            log_run_end(logger, "run-1", False, error="boom")

        assert json.loads(caplog.messages[0].split(" - ", 1)[1]) == {
            "run_id": "run-1",
            "status": "FAILED",
            "error": "boom",
        }
