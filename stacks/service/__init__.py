"""ECS service infrastructure module.

This module provides the ECS cluster, Fargate task definition, load balanced
service and its autoscaling policies.
"""

from .auto_scaling import ServiceAutoScaling
from .fargate_service import FargateServiceConstruct

__all__ = [
    "FargateServiceConstruct",
    "ServiceAutoScaling",
]
