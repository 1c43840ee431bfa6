"""
Auto-scaling for the load balanced Fargate service.

Registers the service's desired count as a scalable target and keeps the
average CPU utilization (and optionally memory utilization) at the configured
target with target tracking policies.
"""

import logging

from aws_cdk import Duration
from aws_cdk import aws_ecs as ecs
from constructs import Construct

from stacks.configs.deployment_config import ScalingConfig

logger = logging.getLogger(__name__)


class ServiceAutoScaling(Construct):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        service: ecs.FargateService,
        config: ScalingConfig | None = None,
    ) -> None:
        super().__init__(scope, construct_id)
        self.config = config or ScalingConfig()

        self.scalable_task_count = service.auto_scale_task_count(
            min_capacity=self.config.min_capacity,
            max_capacity=self.config.max_capacity,
        )

        # CPU Utilization Scaling Policy
        self.scalable_task_count.scale_on_cpu_utilization(
            "CpuScaling",
            target_utilization_percent=self.config.cpu_target_percent,
            scale_in_cooldown=Duration.seconds(self.config.scale_in_cooldown_seconds),
            scale_out_cooldown=Duration.seconds(self.config.scale_out_cooldown_seconds),
        )

        # Memory Utilization Scaling Policy
        if self.config.memory_target_percent is not None:
            self.scalable_task_count.scale_on_memory_utilization(
                "MemoryScaling",
                target_utilization_percent=self.config.memory_target_percent,
                scale_in_cooldown=Duration.seconds(self.config.scale_in_cooldown_seconds),
                scale_out_cooldown=Duration.seconds(
                    self.config.scale_out_cooldown_seconds,
                ),
            )

        logger.info(
            "Service scales between %d and %d tasks at %d%% CPU",
            self.config.min_capacity,
            self.config.max_capacity,
            self.config.cpu_target_percent,
        )
