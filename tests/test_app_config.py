from __future__ import annotations

import logging
import os
import unittest
from pathlib import Path
from unittest import mock

from app_config import DEFAULT_API_BASE_URL, Settings, export_openai_env, load_settings
from logging_config import HumanFormatter, JSONFormatter, setup_logging


class _ExplodingSecrets:
    def get(self, key: str, default: object = None) -> object:
        raise FileNotFoundError("No secrets.toml found")


class TestLoadSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = load_settings(environ={})
        self.assertEqual(settings, Settings())
        self.assertEqual(settings.api_base_url, DEFAULT_API_BASE_URL)
        self.assertEqual(settings.request_timeout_s, 10.0)
        self.assertTrue(settings.analytics_enabled)
        self.assertIsNone(settings.draft_path)

    def test_environment_values(self) -> None:
        settings = load_settings(
            environ={
                "YANNOVA_API_BASE_URL": "https://api.yannova.example/",
                "YANNOVA_REQUEST_TIMEOUT_S": "2.5",
                "YANNOVA_ANALYTICS_ENABLED": "false",
                "YANNOVA_DRAFT_PATH": "/tmp/yannova/draft.json",
                "OPENAI_CHAT_ENABLED": "yes",
                "LOG_LEVEL": "debug",
                "LOG_JSON": "1",
            }
        )
        self.assertEqual(settings.api_base_url, "https://api.yannova.example")
        self.assertEqual(settings.request_timeout_s, 2.5)
        self.assertFalse(settings.analytics_enabled)
        self.assertEqual(settings.draft_path, Path("/tmp/yannova/draft.json"))
        self.assertTrue(settings.openai_chat_enabled)
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertTrue(settings.log_json)

    def test_timeout_can_be_disabled(self) -> None:
        self.assertIsNone(load_settings(environ={"YANNOVA_REQUEST_TIMEOUT_S": "0"}).request_timeout_s)
        self.assertIsNone(load_settings(environ={"YANNOVA_REQUEST_TIMEOUT_S": "none"}).request_timeout_s)
        self.assertEqual(load_settings(environ={"YANNOVA_REQUEST_TIMEOUT_S": "abc"}).request_timeout_s, 10.0)

    def test_secrets_win_over_environment(self) -> None:
        settings = load_settings(
            secrets={"YANNOVA_API_BASE_URL": "https://from-secrets.example"},
            environ={"YANNOVA_API_BASE_URL": "https://from-env.example"},
        )
        self.assertEqual(settings.api_base_url, "https://from-secrets.example")

    def test_missing_secrets_file_falls_back_to_environment(self) -> None:
        settings = load_settings(
            secrets=_ExplodingSecrets(),  # type: ignore[arg-type]
            environ={"OPENAI_API_KEY": "sk-test"},
        )
        self.assertEqual(settings.openai_api_key, "sk-test")

    def test_export_openai_env(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=False):
            export_openai_env(Settings(openai_api_key="sk-x", openai_chat_enabled=True, openai_chat_model="m"))
            self.assertEqual(os.environ["OPENAI_API_KEY"], "sk-x")
            self.assertEqual(os.environ["OPENAI_CHAT_ENABLED"], "true")
            self.assertEqual(os.environ["OPENAI_CHAT_MODEL"], "m")


class TestLogging(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        self._level = root.level
        self._handlers = list(root.handlers)

    def tearDown(self) -> None:
        root = logging.getLogger()
        root.handlers = self._handlers
        root.setLevel(self._level)

    def test_setup_does_not_stack_handlers(self) -> None:
        setup_logging(level="DEBUG", json_logs=False)
        setup_logging(level="WARNING", json_logs=True)
        root = logging.getLogger()
        ours = [h for h in root.handlers if h.get_name() == "yannova-console"]
        self.assertEqual(len(ours), 1)
        self.assertIsInstance(ours[0].formatter, JSONFormatter)
        self.assertEqual(root.level, logging.WARNING)
        self.assertEqual(logging.getLogger("httpx").level, logging.WARNING)

    def test_formatters(self) -> None:
        record = logging.LogRecord("quote_wizard", logging.INFO, __file__, 1, "stap %s", (2,), None)
        record.step = 2
        self.assertIn('"msg": "stap 2"', JSONFormatter().format(record))
        self.assertIn('"step": 2', JSONFormatter().format(record))
        self.assertIn("[I] quote_wizard: stap 2", HumanFormatter().format(record))


if __name__ == "__main__":
    unittest.main()
