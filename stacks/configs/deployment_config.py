"""Deployment configuration for the ECS Fargate CI/CD topology.

Defines validated configuration models for the network, the load balanced
Fargate service, its autoscaling thresholds and the delivery pipeline.
Values are read from CDK context (``cdk.json`` or ``-c`` flags) and fall
back to the defaults below.
"""

import logging
from typing import Any, Final

from constructs import Construct
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# Fargate task CPU units mapped to the memory sizes (MiB) they accept.
FARGATE_MEMORY_BY_CPU: Final[dict[int, list[int]]] = {
    256: [512, 1024, 2048],
    512: list(range(1024, 4097, 1024)),
    1024: list(range(2048, 8193, 1024)),
    2048: list(range(4096, 16385, 1024)),
    4096: list(range(8192, 30721, 1024)),
    8192: list(range(16384, 61441, 4096)),
    16384: list(range(32768, 122881, 8192)),
}

CONTEXT_SECTIONS: Final[tuple[str, ...]] = ("network", "service", "scaling", "pipeline")


class NetworkConfig(BaseModel):
    """VPC settings.

    Attributes:
        vpc_cidr: CIDR block of the VPC.
        max_azs: Maximum number of availability zones to spread subnets over.
        nat_gateways: Number of NAT gateways for private subnet egress.
        enable_flow_logs: Whether VPC Flow Logs are delivered to CloudWatch.
    """

    vpc_cidr: str = "10.0.0.0/16"
    max_azs: int = Field(default=3, ge=1)
    nat_gateways: int = Field(default=1, ge=0)
    enable_flow_logs: bool = True

    @model_validator(mode="after")
    def check_nat_gateways(self) -> "NetworkConfig":
        if self.nat_gateways > self.max_azs:
            msg = (
                f"nat_gateways ({self.nat_gateways}) cannot exceed "
                f"max_azs ({self.max_azs})"
            )
            raise ValueError(msg)
        return self


class ServiceConfig(BaseModel):
    """Container and load balanced service settings.

    Attributes:
        container_name: Name of the application container. The pipeline's
            image definitions file refers to the container by this name.
        image: Registry image the service starts with before the first
            pipeline deployment.
        container_port: Port the application listens on inside the container.
        container_cpu: CPU units reserved for the container.
        container_memory_mib: Hard memory limit of the container.
        task_cpu: CPU units of the Fargate task.
        task_memory_mib: Memory of the Fargate task.
        desired_count: Number of tasks the service keeps running.
        listener_port: Port of the public load balancer listener.
        public_load_balancer: Whether the load balancer is internet facing.
        log_stream_prefix: Prefix of the CloudWatch log streams.
    """

    container_name: str = "flask-app"
    image: str = "nikunjv/flask-image:blue"
    container_port: int = Field(default=5000, ge=1, le=65535)
    container_cpu: int = Field(default=256, gt=0)
    container_memory_mib: int = Field(default=256, gt=0)
    task_cpu: int = 256
    task_memory_mib: int = 512
    desired_count: int = Field(default=3, ge=0)
    listener_port: int = Field(default=80, ge=1, le=65535)
    public_load_balancer: bool = True
    log_stream_prefix: str = "ecs-logs"

    @model_validator(mode="after")
    def check_task_size(self) -> "ServiceConfig":
        allowed = FARGATE_MEMORY_BY_CPU.get(self.task_cpu)
        if allowed is None:
            msg = (
                f"task_cpu {self.task_cpu} is not a Fargate CPU value, "
                f"expected one of {sorted(FARGATE_MEMORY_BY_CPU)}"
            )
            raise ValueError(msg)
        if self.task_memory_mib not in allowed:
            msg = (
                f"task_memory_mib {self.task_memory_mib} is not valid for "
                f"task_cpu {self.task_cpu}"
            )
            raise ValueError(msg)
        if self.container_cpu > self.task_cpu:
            msg = "container_cpu cannot exceed task_cpu"
            raise ValueError(msg)
        if self.container_memory_mib > self.task_memory_mib:
            msg = "container_memory_mib cannot exceed task_memory_mib"
            raise ValueError(msg)
        return self


class ScalingConfig(BaseModel):
    """Service autoscaling thresholds.

    Attributes:
        min_capacity: Lower bound of the running task count.
        max_capacity: Upper bound of the running task count.
        cpu_target_percent: Average CPU utilization the service is kept at.
        scale_in_cooldown_seconds: Wait after a scale-in activity.
        scale_out_cooldown_seconds: Wait after a scale-out activity.
        memory_target_percent: Optional average memory utilization target.
    """

    min_capacity: int = Field(default=1, ge=0)
    max_capacity: int = Field(default=6, ge=1)
    cpu_target_percent: int = Field(default=10, ge=1, le=100)
    scale_in_cooldown_seconds: int = Field(default=60, ge=0)
    scale_out_cooldown_seconds: int = Field(default=60, ge=0)
    memory_target_percent: int | None = Field(default=None, ge=1, le=100)

    @model_validator(mode="after")
    def check_capacity_range(self) -> "ScalingConfig":
        if self.min_capacity > self.max_capacity:
            msg = (
                f"min_capacity ({self.min_capacity}) cannot exceed "
                f"max_capacity ({self.max_capacity})"
            )
            raise ValueError(msg)
        return self


class PipelineConfig(BaseModel):
    """Source repository and delivery pipeline settings.

    Attributes:
        github_owner: GitHub user or organization owning the repository.
        github_repo: GitHub repository holding the application source.
        branch: Branch that triggers builds and pipeline executions.
        oauth_token_secret_name: Secrets Manager secret with the GitHub token.
        connection_arn: Optional CodeStar connection ARN. When set the source
            stage uses the connection instead of the OAuth token.
        docker_context: Directory of the repository holding the Dockerfile.
        image_definitions_file: File the build writes for the ECS deploy action.
        require_manual_approval: Whether an approval stage gates deployment.
        build_webhook: Whether pushes trigger the CodeBuild project directly.
    """

    github_owner: str = "user-name"
    github_repo: str = "amazon-ecs-fargate-cdk-cicd"
    branch: str = "main"
    oauth_token_secret_name: str = "/my/github/token"  # noqa: S105
    connection_arn: str | None = None
    docker_context: str = "flask-docker-app"
    image_definitions_file: str = "imagedefinitions.json"
    require_manual_approval: bool = True
    build_webhook: bool = True

    @field_validator("github_owner", "github_repo", "branch")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "repository owner, name and branch must not be empty"
            raise ValueError(msg)
        return value.strip()


class DeploymentConfig(BaseModel):
    """Complete configuration of the Fargate CI/CD stack."""

    network: NetworkConfig = Field(default_factory=NetworkConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    scaling: ScalingConfig = Field(default_factory=ScalingConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    @model_validator(mode="after")
    def check_desired_count(self) -> "DeploymentConfig":
        desired = self.service.desired_count
        if not self.scaling.min_capacity <= desired <= self.scaling.max_capacity:
            msg = (
                f"desired_count ({desired}) must lie between min_capacity "
                f"({self.scaling.min_capacity}) and max_capacity "
                f"({self.scaling.max_capacity})"
            )
            raise ValueError(msg)
        return self


def load_deployment_config(scope: Construct) -> DeploymentConfig:
    """Build the deployment configuration from CDK context.

    Each of the ``network``, ``service``, ``scaling`` and ``pipeline`` context
    keys may hold a dictionary overriding the matching model defaults.

    Args:
        scope: Construct whose node context is read, usually the App.

    Returns:
        Validated DeploymentConfig instance.

    Raises:
        ValueError: If a context section is not a mapping or fails validation.
    """
    overrides: dict[str, Any] = {}
    for section in CONTEXT_SECTIONS:
        value = scope.node.try_get_context(section)
        if value is None:
            continue
        if not isinstance(value, dict):
            msg = f"CDK context '{section}' must be an object, got {type(value).__name__}"
            raise ValueError(msg)
        overrides[section] = value

    logger.info("Loading deployment configuration with overrides for %s", sorted(overrides))
    return DeploymentConfig.model_validate(overrides)
