"""Setup items for the alert stack tests."""

import pytest
from aws_cdk import App, Environment, Stack

from alert_config import AlertConfig


CONFIG_ENV_VARS = [
    "ALERT_SOURCE",
    "SLACK_HOOK_URL_BASE64",
    "EC2_INSTANCE_ID",
    "ECS_CLUSTER_NAME",
    "ECS_SERVICE_NAME",
    "AS_GROUP_NAME",
    "CW_LOG_GROUP_NAME",
    "LOG_ERROR_FILTER",
    "STAGE",
    "SLACK_CHANNEL",
    "S3_BUCKET",
    "S3_KEY",
    "ALARM_PERIOD",
    "ALARM_EVALUATION_PERIODS",
    "ALARM_THRESHOLD",
    "DRY_RUN",
    "LAMBDA_RUNTIME",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep configuration environment variables from leaking into tests."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def account():
    """Set the account number to test with."""
    return "1234567890"


@pytest.fixture()
def region():
    """Set the region to test with."""
    return "us-east-1"


@pytest.fixture()
def env(account, region):
    """Set the environment to test with."""
    return Environment(account=account, region=region)


@pytest.fixture()
def app():
    """Return the app to test with."""
    return App()


@pytest.fixture()
def stack(app, env):
    """Return the stack to test with."""
    return Stack(app, "TestStack", env=env)


@pytest.fixture()
def make_config():
    """Return a factory for configs with the required fields filled in."""

    def _make_config(**overrides):
        values = {"source": "svc", "slack_hook_url_base64": "aHR0cHM6Ly9ob29rcy5zbGFjay5jb20="}
        values.update(overrides)
        return AlertConfig(**values)

    return _make_config
