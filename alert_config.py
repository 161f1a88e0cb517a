import os
from dataclasses import dataclass
from typing import Any, Optional


DEFAULT_LOG_ERROR_FILTER = "ERROR"
DEFAULT_STAGE = "test"
DEFAULT_SLACK_CHANNEL = "alert-template"
DEFAULT_S3_BUCKET = "alert-template"
DEFAULT_S3_KEY = "post-slack-alert-0.1.1.zip"
DEFAULT_LAMBDA_RUNTIME = "nodejs20.x"
DEFAULT_ALARM_PERIOD = 60
DEFAULT_ALARM_EVALUATION_PERIODS = 1
DEFAULT_ALARM_THRESHOLD = 80.0


class AlertConfigError(ValueError):
    """Raised when the alert configuration is missing or malformed."""


@dataclass(frozen=True)
class AlertConfig:
    """Operator supplied settings for one alert stack.

    Target identifiers are optional; an empty string means the target is
    not monitored.
    """

    source: str
    slack_hook_url_base64: str
    ec2_instance_id: str = ""
    ecs_cluster_name: str = ""
    ecs_service_name: str = ""
    as_group_name: str = ""
    cw_log_group_name: str = ""
    log_error_filter: str = DEFAULT_LOG_ERROR_FILTER
    stage: str = DEFAULT_STAGE
    slack_channel: str = DEFAULT_SLACK_CHANNEL
    s3_bucket: str = DEFAULT_S3_BUCKET
    s3_key: str = DEFAULT_S3_KEY
    alarm_period: int = DEFAULT_ALARM_PERIOD
    alarm_evaluation_periods: int = DEFAULT_ALARM_EVALUATION_PERIODS
    alarm_threshold: float = DEFAULT_ALARM_THRESHOLD
    dry_run: bool = False
    lambda_runtime: str = DEFAULT_LAMBDA_RUNTIME

    @classmethod
    def from_context(cls, node: Any) -> "AlertConfig":
        """Build a config from CDK context, falling back to the environment.

        ``node`` is anything with a ``try_get_context`` method, normally
        ``app.node``.
        """

        def lookup(context_key: str, env_key: str) -> Optional[Any]:
            value = node.try_get_context(context_key)
            if value is None:
                value = os.getenv(env_key)
            return value

        def text(context_key: str, env_key: str, default: str = "") -> str:
            value = lookup(context_key, env_key)
            return default if value is None else str(value)

        source = text("source", "ALERT_SOURCE")
        if not source:
            raise AlertConfigError("'source' is required (context key 'source' or ALERT_SOURCE)")

        hook_url = text("slackHookUrlBase64", "SLACK_HOOK_URL_BASE64")
        if not hook_url:
            raise AlertConfigError(
                "'slackHookUrlBase64' is required (context key 'slackHookUrlBase64' or SLACK_HOOK_URL_BASE64)"
            )

        return cls(
            source=source,
            slack_hook_url_base64=hook_url,
            ec2_instance_id=text("ec2InstanceId", "EC2_INSTANCE_ID"),
            ecs_cluster_name=text("ecsClusterName", "ECS_CLUSTER_NAME"),
            ecs_service_name=text("ecsServiceName", "ECS_SERVICE_NAME"),
            as_group_name=text("asGroupName", "AS_GROUP_NAME"),
            cw_log_group_name=text("cwLogGroupName", "CW_LOG_GROUP_NAME"),
            log_error_filter=text("logErrorFilter", "LOG_ERROR_FILTER", DEFAULT_LOG_ERROR_FILTER),
            stage=text("stage", "STAGE", DEFAULT_STAGE),
            slack_channel=text("slackChannel", "SLACK_CHANNEL", DEFAULT_SLACK_CHANNEL),
            s3_bucket=text("s3Bucket", "S3_BUCKET", DEFAULT_S3_BUCKET),
            s3_key=text("s3Key", "S3_KEY", DEFAULT_S3_KEY),
            alarm_period=_positive_int(
                "alarmPeriod", lookup("alarmPeriod", "ALARM_PERIOD"), DEFAULT_ALARM_PERIOD
            ),
            alarm_evaluation_periods=_positive_int(
                "alarmEvaluationPeriods",
                lookup("alarmEvaluationPeriods", "ALARM_EVALUATION_PERIODS"),
                DEFAULT_ALARM_EVALUATION_PERIODS,
            ),
            alarm_threshold=_number(
                "alarmThreshold", lookup("alarmThreshold", "ALARM_THRESHOLD"), DEFAULT_ALARM_THRESHOLD
            ),
            dry_run=_flag("dryRun", lookup("dryRun", "DRY_RUN")),
            lambda_runtime=text("lambdaRuntime", "LAMBDA_RUNTIME", DEFAULT_LAMBDA_RUNTIME),
        )


def _positive_int(name: str, value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise AlertConfigError(f"'{name}' must be an integer, got {value!r}") from exc
    if number <= 0:
        raise AlertConfigError(f"'{name}' must be positive, got {number}")
    return number


def _number(name: str, value: Any, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise AlertConfigError(f"'{name}' must be a number, got {value!r}") from exc


def _flag(name: str, value: Any) -> bool:
    if value is None or value == "":
        return False
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise AlertConfigError(f"'{name}' must be true or false, got {value!r}")
