"""Network infrastructure module for the ECS Fargate service.

This module provides the VPC and subnet layout the load balancer and the
Fargate tasks are deployed into.
"""

from .network_stack import NetworkStack

__all__ = ["NetworkStack"]
