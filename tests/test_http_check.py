import base64
import os
import time
import unittest
from unittest.mock import MagicMock, patch

import requests

from tests.support import closed_port, serve_dripping, serve_http
from uptime_monitor.checks.http_check import run_http
from uptime_monitor.models import CheckStatus, CheckType, ProbeConfig


def http_config(url: str, **kwargs) -> ProbeConfig:
    return ProbeConfig(service_id=7, endpoint=url, **kwargs)


class HttpCheckTests(unittest.TestCase):
    def setUp(self) -> None:
        env = patch.dict(
            os.environ, {"NO_PROXY": "127.0.0.1,localhost", "no_proxy": "127.0.0.1,localhost"}
        )
        env.start()
        self.addCleanup(env.stop)

    def test_200_without_expectations_is_up(self) -> None:
        with serve_http(200, "hello") as (url, _):
            res = run_http(http_config(url, timeout_s=3))

        self.assertEqual(res.status, CheckStatus.UP)
        self.assertEqual(res.service_id, 7)
        self.assertIsNotNone(res.response_time_ms)
        self.assertIsNone(res.error_message)

    def test_404_without_expected_code_is_down(self) -> None:
        with serve_http(404, "missing") as (url, _):
            res = run_http(http_config(url, timeout_s=3))

        self.assertEqual(res.status, CheckStatus.DOWN)
        self.assertIn("404", res.error_message)
        self.assertIsNotNone(res.response_time_ms)

    def test_expected_status_code_exact_match(self) -> None:
        with serve_http(404, "missing") as (url, _):
            res = run_http(http_config(url, timeout_s=3, expected_status_code=404))
        self.assertEqual(res.status, CheckStatus.UP)

        with serve_http(200, "ok") as (url, _):
            res = run_http(http_config(url, timeout_s=3, expected_status_code=204))
        self.assertEqual(res.status, CheckStatus.DOWN)
        self.assertIn("204", res.error_message)
        self.assertIn("200", res.error_message)

    def test_missing_expected_content_is_down(self) -> None:
        with serve_http(200, "service starting") as (url, _):
            res = run_http(http_config(url, timeout_s=3, expected_content="ready"))

        self.assertEqual(res.status, CheckStatus.DOWN)
        self.assertEqual(res.error_message, "expected content not found")

    def test_content_match_is_case_sensitive_substring(self) -> None:
        with serve_http(200, "NOT READY YET") as (url, _):
            res = run_http(http_config(url, timeout_s=3, expected_content="ready"))
        self.assertEqual(res.status, CheckStatus.DOWN)

        with serve_http(200, "not ready yet") as (url, _):
            res = run_http(http_config(url, timeout_s=3, expected_content="ready"))
        self.assertEqual(res.status, CheckStatus.UP)

    def test_basic_auth_and_headers_are_sent(self) -> None:
        with serve_http(200, "ok") as (url, seen):
            run_http(
                http_config(
                    url,
                    timeout_s=3,
                    username="admin",
                    password="s3cret",
                    headers={"X-Probe": "uptime"},
                )
            )

        expected = "Basic " + base64.b64encode(b"admin:s3cret").decode()
        self.assertEqual(seen[0].get("Authorization"), expected)
        self.assertEqual(seen[0].get("X-Probe"), "uptime")

    def test_basic_auth_needs_both_username_and_password(self) -> None:
        with serve_http(200, "ok") as (url, seen):
            run_http(http_config(url, timeout_s=3, username="admin"))

        self.assertNotIn("Authorization", seen[0])

    def test_connection_refused_is_down_without_response_time(self) -> None:
        res = run_http(http_config(f"http://127.0.0.1:{closed_port()}/", timeout_s=2))

        self.assertEqual(res.status, CheckStatus.DOWN)
        self.assertIsNone(res.response_time_ms)
        self.assertTrue(res.error_message.startswith("connection error"))

    def test_slow_server_hits_timeout(self) -> None:
        with serve_http(200, "late", delay_s=2.0) as (url, _):
            start = time.monotonic()
            res = run_http(http_config(url, timeout_s=0.3))
            elapsed = time.monotonic() - start

        self.assertEqual(res.status, CheckStatus.DOWN)
        self.assertIn("timed out", res.error_message)
        self.assertLess(elapsed, 0.8)

    def test_request_arguments(self) -> None:
        response = MagicMock(status_code=200)
        with patch(
            "uptime_monitor.checks.http_check.requests.get", return_value=response
        ) as mock_get:
            run_http(
                http_config("https://example.local/health", timeout_s=3, insecure_skip=True),
                connect_timeout_s=9.0,
            )

        mock_get.assert_called_once_with(
            "https://example.local/health",
            timeout=(9.0, 3),
            auth=None,
            headers=None,
            verify=False,
            stream=True,
        )

    def test_https_endpoint_is_http_type_with_ssl_check(self) -> None:
        cfg = http_config("https://example.local/health")
        self.assertEqual(cfg.check_type, CheckType.HTTP)
        self.assertTrue(cfg.ssl_check)

    def test_body_read_failure_is_down(self) -> None:
        response = MagicMock(status_code=200)
        response.iter_content.side_effect = requests.ConnectionError("reset")
        with patch("uptime_monitor.checks.http_check.requests.get", return_value=response):
            res = run_http(http_config("http://example.local/", expected_content="ok"))

        self.assertEqual(res.status, CheckStatus.DOWN)
        self.assertIn("content read error", res.error_message)

    def test_dripping_body_is_cut_off_at_timeout(self) -> None:
        with serve_dripping("ready!!!", interval_s=0.5) as url:
            start = time.monotonic()
            res = run_http(http_config(url, timeout_s=1, expected_content="ready"))
            elapsed = time.monotonic() - start

        self.assertEqual(res.status, CheckStatus.DOWN)
        self.assertEqual(res.error_message, "HTTP request timed out after 1s")
        self.assertLess(elapsed, 1.5)


if __name__ == "__main__":
    unittest.main()
