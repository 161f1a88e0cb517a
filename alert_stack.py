import logging

from aws_cdk import CfnOutput, Duration, Stack
from aws_cdk import aws_cloudwatch as cw
from aws_cdk import aws_cloudwatch_actions as cw_actions
from aws_cdk import aws_iam as iam
from aws_cdk import aws_lambda as lambda_
from aws_cdk import aws_logs as logs
from aws_cdk import aws_s3 as s3
from aws_cdk import aws_sns as sns
from aws_cdk import aws_sns_subscriptions as subs
from constructs import Construct

from alarm_resolver import GREATER_THAN_THRESHOLD, resolve, resolve_metric_filter
from alert_config import AlertConfig


logger = logging.getLogger("alert_stack")

COMPARISON_OPERATORS = {
    GREATER_THAN_THRESHOLD: cw.ComparisonOperator.GREATER_THAN_THRESHOLD,
}


def runtime_for(name: str) -> lambda_.Runtime:
    if name.startswith("nodejs"):
        family = lambda_.RuntimeFamily.NODEJS
    elif name.startswith("python"):
        family = lambda_.RuntimeFamily.PYTHON
    else:
        family = lambda_.RuntimeFamily.OTHER
    return lambda_.Runtime(name, family)


class AlertConstruct(Construct):
    """Slack alert function, its SNS topic and the alarms resolved for a config.

    Can be added to any stack; ``AlertStack`` wraps it as a standalone stack.
    """

    def __init__(self, scope: Construct, construct_id: str, config: AlertConfig, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.config = config

        role = iam.Role(
            self,
            "LambdaExecutionRole",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            path="/",
            inline_policies={
                "root": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            actions=["logs:*"],
                            resources=["arn:aws:logs:*:*:*"],
                        )
                    ]
                ),
                "s3-read-only": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            actions=["s3:GetObject"],
                            resources=[f"arn:aws:s3:::{config.s3_bucket}/*"],
                        )
                    ]
                ),
            },
        )

        artifact_bucket = s3.Bucket.from_bucket_name(self, "ArtifactBucket", config.s3_bucket)

        self.function = lambda_.Function(
            self,
            "Lambda",
            description="alert function",
            runtime=runtime_for(config.lambda_runtime),
            handler="index.handler",
            code=lambda_.Code.from_bucket(artifact_bucket, config.s3_key),
            role=role,
            environment={
                "dryRun": "true" if config.dry_run else "false",
                "slackChannel": config.slack_channel,
                "base64HookUrl": config.slack_hook_url_base64,
            },
        )

        self.topic = sns.Topic(self, "Topic", display_name="Alert")
        # also grants sns.amazonaws.com permission to invoke the function
        self.topic.add_subscription(subs.LambdaSubscription(self.function))

        self.metric_filter = None
        filter_spec = resolve_metric_filter(config)
        if filter_spec:
            log_group = logs.LogGroup.from_log_group_name(
                self, "MonitoredLogGroup", filter_spec.log_group_name
            )
            self.metric_filter = logs.MetricFilter(
                self,
                filter_spec.construct_id,
                log_group=log_group,
                filter_pattern=logs.FilterPattern.literal(filter_spec.filter_pattern),
                metric_namespace=filter_spec.metric_namespace,
                metric_name=filter_spec.metric_name,
                metric_value=filter_spec.metric_value,
            )

        self.alarms = {}
        for spec in resolve(config):
            metric = cw.Metric(
                namespace=spec.namespace,
                metric_name=spec.metric_name,
                dimensions_map=spec.dimensions_map or None,
                statistic=spec.statistic,
                period=Duration.seconds(spec.period),
            )
            alarm = cw.Alarm(
                self,
                spec.construct_id,
                alarm_name=spec.alarm_name,
                alarm_description=spec.alarm_description,
                metric=metric,
                threshold=spec.threshold,
                evaluation_periods=spec.evaluation_periods,
                comparison_operator=COMPARISON_OPERATORS[spec.comparison_operator],
            )
            alarm.add_alarm_action(cw_actions.SnsAction(self.topic))
            self.alarms[spec.construct_id] = alarm

        logger.info(
            "Alert construct %s for %s: %d alarm(s)%s",
            construct_id,
            config.source,
            len(self.alarms),
            " and a log metric filter" if self.metric_filter else "",
        )


class AlertStack(Stack):
    """Generic alert stack posting CloudWatch alarms to Slack."""

    def __init__(self, scope: Construct, construct_id: str, **kwargs):
        config = kwargs.pop("config", None)
        super().__init__(scope, construct_id, **kwargs)
        self.config = config or AlertConfig.from_context(self.node)

        self.alert = AlertConstruct(self, "Alert", config=self.config)

        CfnOutput(
            self,
            "Stage",
            value=self.config.stage,
            description="Stage descriptor",
        )

        CfnOutput(
            self,
            "SlackChannel",
            value=self.config.slack_channel,
            description="Notification channel",
        )

        CfnOutput(
            self,
            "SlackHookUrlBase64",
            value=self.config.slack_hook_url_base64,
            description="Predefined hook URL (base64-encoded)",
        )

        CfnOutput(
            self,
            "S3Bucket",
            value=self.config.s3_bucket,
            description="Name of S3 Bucket holding alert template and lambda",
        )

        CfnOutput(
            self,
            "S3Key",
            value=self.config.s3_key,
            description="Lambda key",
        )
