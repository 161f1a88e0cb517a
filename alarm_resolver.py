"""Decide which alarms an alert stack carries for a given configuration."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from alert_config import AlertConfig


logger = logging.getLogger("alarm_resolver")

GREATER_THAN_THRESHOLD = "GreaterThanThreshold"

# log error alarm window is fixed, the shared tuning values do not apply
LOG_ERROR_PERIOD = 60
LOG_ERROR_EVALUATION_PERIODS = 1
LOG_ERROR_THRESHOLD = 0.0
LOG_ERROR_METRIC_NAME = "count"


class AlarmKind(Enum):
    EC2_CPU = "ec2-cpu"
    ECS_CLUSTER_CPU = "ecs-cluster-cpu"
    ECS_CLUSTER_MEMORY = "ecs-cluster-memory"
    ECS_SERVICE_CPU = "ecs-service-cpu"
    ECS_SERVICE_MEMORY = "ecs-service-memory"
    AUTOSCALING_CPU = "autoscaling-cpu"
    LOG_ERROR = "log-error"


@dataclass(frozen=True)
class AlarmSpec:
    construct_id: str
    kind: AlarmKind
    alarm_name: str
    alarm_description: str
    namespace: str
    metric_name: str
    dimensions: Tuple[Tuple[str, str], ...]
    statistic: str
    comparison_operator: str
    threshold: float
    period: int
    evaluation_periods: int

    @property
    def dimensions_map(self):
        return dict(self.dimensions)


@dataclass(frozen=True)
class MetricFilterSpec:
    construct_id: str
    log_group_name: str
    filter_pattern: str
    metric_namespace: str
    metric_name: str
    metric_value: str


def ec2_instance_defined(config: AlertConfig) -> bool:
    return config.ec2_instance_id != ""


def ecs_cluster_defined(config: AlertConfig) -> bool:
    """Cluster alarms only apply when no service is named."""
    return config.ecs_cluster_name != "" and config.ecs_service_name == ""


def ecs_service_defined(config: AlertConfig) -> bool:
    return config.ecs_cluster_name != "" and config.ecs_service_name != ""


def as_group_defined(config: AlertConfig) -> bool:
    return config.as_group_name != ""


def log_group_defined(config: AlertConfig) -> bool:
    return config.cw_log_group_name != ""


def error_namespace(config: AlertConfig) -> str:
    return f"{config.source}/error"


def _utilization_alarm(
    config: AlertConfig,
    construct_id: str,
    kind: AlarmKind,
    label: str,
    resource: str,
    namespace: str,
    metric_name: str,
    dimensions: Tuple[Tuple[str, str], ...],
) -> AlarmSpec:
    return AlarmSpec(
        construct_id=construct_id,
        kind=kind,
        alarm_name=f"[{config.stage}] {label} ({config.source})",
        alarm_description=(
            f"Raise alarm if {resource} utilization > {config.alarm_threshold:g}% "
            f"for {config.alarm_period}s"
        ),
        namespace=namespace,
        metric_name=metric_name,
        dimensions=dimensions,
        statistic="Average",
        comparison_operator=GREATER_THAN_THRESHOLD,
        threshold=config.alarm_threshold,
        period=config.alarm_period,
        evaluation_periods=config.alarm_evaluation_periods,
    )


def resolve(config: AlertConfig) -> List[AlarmSpec]:
    """Return the alarms to create for ``config``, in a stable order."""
    alarms: List[AlarmSpec] = []

    if ec2_instance_defined(config):
        alarms.append(
            _utilization_alarm(
                config,
                "InstanceCPUAlarm",
                AlarmKind.EC2_CPU,
                "EC2 instance CPU utilization",
                "CPU",
                "AWS/EC2",
                "CPUUtilization",
                (("InstanceId", config.ec2_instance_id),),
            )
        )

    if ecs_cluster_defined(config):
        cluster = (("ClusterName", config.ecs_cluster_name),)
        alarms.append(
            _utilization_alarm(
                config,
                "ECSClusterCPUAlarm",
                AlarmKind.ECS_CLUSTER_CPU,
                "ECS cluster CPU utilization",
                "CPU",
                "AWS/ECS",
                "CPUUtilization",
                cluster,
            )
        )
        alarms.append(
            _utilization_alarm(
                config,
                "ECSClusterMemoryAlarm",
                AlarmKind.ECS_CLUSTER_MEMORY,
                "ECS cluster memory utilization",
                "memory",
                "AWS/ECS",
                "MemoryUtilization",
                cluster,
            )
        )

    if ecs_service_defined(config):
        service = (
            ("ClusterName", config.ecs_cluster_name),
            ("ServiceName", config.ecs_service_name),
        )
        alarms.append(
            _utilization_alarm(
                config,
                "ECSServiceCPUAlarm",
                AlarmKind.ECS_SERVICE_CPU,
                "ECS service CPU utilization",
                "CPU",
                "AWS/ECS",
                "CPUUtilization",
                service,
            )
        )
        alarms.append(
            _utilization_alarm(
                config,
                "ECSServiceMemoryAlarm",
                AlarmKind.ECS_SERVICE_MEMORY,
                "ECS service memory utilization",
                "memory",
                "AWS/ECS",
                "MemoryUtilization",
                service,
            )
        )

    if as_group_defined(config):
        alarms.append(
            _utilization_alarm(
                config,
                "ASGroupCPUAlarm",
                AlarmKind.AUTOSCALING_CPU,
                "Auto scaling CPU utilization",
                "CPU",
                "AWS/EC2",
                "CPUUtilization",
                (("AutoScalingGroupName", config.as_group_name),),
            )
        )

    if log_group_defined(config):
        alarms.append(
            AlarmSpec(
                construct_id="LogErrorAlarm",
                kind=AlarmKind.LOG_ERROR,
                alarm_name=(
                    f"[{config.stage}] '{config.log_error_filter}' in CloudWatch Logs ({config.source})"
                ),
                alarm_description=f"An error has been raised in {config.cw_log_group_name}",
                namespace=error_namespace(config),
                metric_name=LOG_ERROR_METRIC_NAME,
                dimensions=(),
                statistic="Sum",
                comparison_operator=GREATER_THAN_THRESHOLD,
                threshold=LOG_ERROR_THRESHOLD,
                period=LOG_ERROR_PERIOD,
                evaluation_periods=LOG_ERROR_EVALUATION_PERIODS,
            )
        )

    logger.debug("Resolved alarms for %s: %s", config.source, [a.construct_id for a in alarms])
    return alarms


def resolve_metric_filter(config: AlertConfig) -> Optional[MetricFilterSpec]:
    """Return the log metric filter feeding the log error alarm, if any."""
    if not log_group_defined(config):
        return None
    return MetricFilterSpec(
        construct_id="ErrorMetricFilter",
        log_group_name=config.cw_log_group_name,
        filter_pattern=config.log_error_filter,
        metric_namespace=error_namespace(config),
        metric_name=LOG_ERROR_METRIC_NAME,
        metric_value="1",
    )
