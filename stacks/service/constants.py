"""Constants for the load balanced Fargate service."""

from aws_cdk import aws_logs as logs

TASK_ROLE_PREFIX: str = "ecs-taskRole"
TASK_ASSUMED_BY: str = "ecs-tasks.amazonaws.com"
LOG_RETENTION_DAYS: logs.RetentionDays = logs.RetentionDays.ONE_WEEK
