"""Tests for the consume CLI."""

import asyncio
from pathlib import Path
from unittest import IsolatedAsyncioTestCase, TestCase
from unittest.mock import AsyncMock, MagicMock, patch

import click
from click.testing import CliRunner
from fake_broker import FakeBroker

from msg_stack.application import Application
from msg_stack.cli.consume import load_app, main, run_app
from msg_stack.errors import ConfigurationError, LifecycleError

APPS_DIR = str(Path(__file__).resolve().parent / "e2e_apps")
CONFIG = {"rabbit_url": "amqp://u:p@h1", "queue_name": "jobs"}


class TestLoadApp(TestCase):
    def test_loads_application_instance(self):
        app = load_app("consumer_apps.echo:app", CONFIG, app_path=[APPS_DIR])
        self.assertIsInstance(app, Application)
        self.assertEqual(app.get("queue_name"), "test_e2e")

    def test_calls_factory_with_config(self):
        app = load_app("consumer_apps.echo:create_app", CONFIG, app_path=[APPS_DIR])
        self.assertIsInstance(app, Application)
        self.assertEqual(app.get("rabbit_url"), "amqp://u:p@h1")
        self.assertEqual(app.get("queue_name"), "jobs")

    def test_accepts_any_iterable_app_path(self):
        app = load_app("consumer_apps.echo:create_app", CONFIG, app_path=(APPS_DIR,))
        self.assertIsInstance(app, Application)

    def test_rejects_target_without_attribute(self):
        with self.assertRaises(click.ClickException) as ctx:
            load_app("consumer_apps.echo", CONFIG, app_path=[APPS_DIR])
        self.assertIn("expected module:attribute", ctx.exception.message)

    def test_rejects_missing_module(self):
        with self.assertRaises(click.ClickException) as ctx:
            load_app("no_such_module_here:app", CONFIG)
        self.assertIn("Cannot import", ctx.exception.message)

    def test_rejects_missing_attribute(self):
        with self.assertRaises(click.ClickException) as ctx:
            load_app("consumer_apps.echo:missing", CONFIG, app_path=[APPS_DIR])
        self.assertIn("has no attribute", ctx.exception.message)

    def test_rejects_non_application(self):
        with self.assertRaises(click.ClickException) as ctx:
            load_app("consumer_apps.echo:not_an_app", CONFIG, app_path=[APPS_DIR])
        self.assertIn("is not an Application", ctx.exception.message)

    def test_factory_config_errors_propagate(self):
        with self.assertRaises(ConfigurationError):
            load_app("consumer_apps.echo:create_app", {}, app_path=[APPS_DIR])


class TestRunApp(IsolatedAsyncioTestCase):
    def setUp(self):
        self.calls = []
        self.broker = FakeBroker(self.calls)

        async def handle(ctx, next):
            pass

        self.app = Application(CONFIG, broker=self.broker).listen(handle)

    async def test_closes_when_connection_drops(self):
        task = asyncio.create_task(run_app(self.app))
        while "on_close" not in self.calls:
            await asyncio.sleep(0)
        error = ConnectionResetError("gone")
        self.broker.connections[0].drop(error)
        self.assertIs(await asyncio.wait_for(task, timeout=1), error)
        self.assertNotIn("channel.close", self.calls)

    async def test_closes_app_when_stopped(self):
        stopped = asyncio.Event()
        task = asyncio.create_task(run_app(self.app, stopped))
        while "on_close" not in self.calls:
            await asyncio.sleep(0)
        stopped.set()
        self.assertIsNone(await asyncio.wait_for(task, timeout=1))
        self.assertEqual(self.calls[-2:], ["channel.close", "connection.close"])
        self.assertIsNone(self.app.connection)

    async def test_connect_failure_propagates(self):
        self.broker.fail_on.add("connect")
        with self.assertRaises(LifecycleError):
            await run_app(self.app)
        self.assertEqual(self.app.listeners("connection_closed"), [])


class TestConsumeCLI(TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_requires_app(self):
        result = self.runner.invoke(main, [])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("Missing option", result.output)

    @patch("msg_stack.cli.consume.run_app", new_callable=AsyncMock, return_value=None)
    @patch("msg_stack.cli.consume.load_app")
    def test_passes_cli_overrides_to_factory(self, mock_load_app, mock_run_app):
        app = MagicMock()
        mock_load_app.return_value = app
        result = self.runner.invoke(
            main,
            [
                "--app",
                "consumer_apps.echo:create_app",
                "--app-path",
                APPS_DIR,
                "--rabbit-url",
                "amqp://cli@h9",
                "--queue-name",
                "cli_queue",
            ],
            env={"RABBIT_URL": "amqp://env@h1", "QUEUE_NAME": "env_queue"},
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Consumer stopped", result.output)
        target, config = mock_load_app.call_args.args
        self.assertEqual(target, "consumer_apps.echo:create_app")
        self.assertEqual(config["rabbit_url"], "amqp://cli@h9")
        self.assertEqual(config["queue_name"], "cli_queue")
        self.assertEqual(mock_load_app.call_args.kwargs["app_path"], [APPS_DIR])
        mock_run_app.assert_awaited_once_with(app)

    @patch("msg_stack.cli.consume.load_app", side_effect=ConfigurationError("Invalid configuration: queue_name"))
    def test_configuration_error_is_reported(self, mock_load_app):
        result = self.runner.invoke(main, ["--app", "consumer_apps.echo:create_app"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("Invalid configuration", result.output)

    @patch("msg_stack.cli.consume.run_app", new_callable=AsyncMock)
    @patch("msg_stack.cli.consume.load_app")
    def test_lifecycle_error_is_reported_with_cause(self, mock_load_app, mock_run_app):
        error = LifecycleError("connect", "open connection")
        error.__cause__ = ConnectionRefusedError("refused")
        mock_run_app.side_effect = error
        result = self.runner.invoke(main, ["--app", "consumer_apps.echo:app"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("connect failed during open connection: refused", result.output)

    @patch("msg_stack.cli.consume.run_app", new_callable=AsyncMock)
    @patch("msg_stack.cli.consume.load_app")
    def test_dropped_connection_fails(self, mock_load_app, mock_run_app):
        mock_run_app.return_value = ConnectionResetError("gone")
        result = self.runner.invoke(main, ["--app", "consumer_apps.echo:app"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("Broker connection closed: gone", result.output)
