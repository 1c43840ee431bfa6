"""ECS cluster and load balanced Fargate service.

This module creates the compute half of the topology: the ECS cluster, the
IAM roles, the Fargate task definition with its application container and an
internet facing Application Load Balancer in front of the service.
"""

import logging
from typing import cast

from aws_cdk import RemovalPolicy, Stack
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_ecs as ecs
from aws_cdk import aws_ecs_patterns as ecs_patterns
from aws_cdk import aws_iam as iam
from aws_cdk import aws_logs as logs
from cdk_nag import NagSuppressions
from constructs import Construct

from stacks.common.policies import get_task_execution_policy
from stacks.configs.deployment_config import ServiceConfig

from .constants import LOG_RETENTION_DAYS, TASK_ASSUMED_BY, TASK_ROLE_PREFIX

logger = logging.getLogger(__name__)


class FargateServiceConstruct(Construct):
    """Load balanced Fargate service running the application container.

    Attributes:
        cluster: ECS cluster for container orchestration.
        cluster_admin_role: Role assumable by the account for cluster administration.
        task_role: IAM role assumed by the running application.
        log_group: CloudWatch log group receiving container output.
        task_definition: Fargate task definition with the application container.
        container: The application container definition.
        service: The ApplicationLoadBalancedFargateService pattern.
    """

    cluster: ecs.Cluster
    cluster_admin_role: iam.Role
    task_role: iam.Role
    log_group: logs.LogGroup
    task_definition: ecs.FargateTaskDefinition
    container: ecs.ContainerDefinition
    service: ecs_patterns.ApplicationLoadBalancedFargateService

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: ec2.IVpc,
        config: ServiceConfig | None = None,
    ) -> None:
        """Create cluster, roles, task definition and load balanced service.

        Args:
            scope: CDK construct scope for resource creation.
            construct_id: Unique identifier for this construct.
            vpc: VPC the cluster and load balancer are placed in.
            config: Optional service configuration, defaults to ServiceConfig().
        """
        super().__init__(scope, construct_id)

        self.vpc = vpc
        self.config = config or ServiceConfig()
        self.stack_name = Stack.of(self).stack_name

        self._create_cluster()
        self._create_roles()
        self._create_log_group()
        self._create_task_definition()
        self._create_service()
        self._apply_nag_suppressions()

    def _create_cluster(self) -> None:
        self.cluster = ecs.Cluster(
            self,
            "Cluster",
            vpc=self.vpc,
            container_insights_v2=ecs.ContainerInsights.ENHANCED,
        )

    def _create_roles(self) -> None:
        """Create the cluster administration role and the application task role."""
        self.cluster_admin_role = iam.Role(
            self,
            "ClusterAdminRole",
            assumed_by=cast("iam.IPrincipal", iam.AccountRootPrincipal()),
        )

        task_role_name = f"{TASK_ROLE_PREFIX}-{self.stack_name}"
        self.task_role = iam.Role(
            self,
            "TaskRole",
            role_name=task_role_name,
            assumed_by=cast("iam.IPrincipal", iam.ServicePrincipal(TASK_ASSUMED_BY)),
        )

    def _create_log_group(self) -> None:
        self.log_group = logs.LogGroup(
            self,
            "ContainerLogGroup",
            retention=LOG_RETENTION_DAYS,
            removal_policy=RemovalPolicy.DESTROY,
        )

    def _create_task_definition(self) -> None:
        """Create task definition and the application container.

        The execution role pulls the image and writes the container logs; the
        pipeline later replaces the image through the image definitions file,
        matched on the container name.
        """
        self.task_definition = ecs.FargateTaskDefinition(
            self,
            "TaskDefinition",
            cpu=self.config.task_cpu,
            memory_limit_mib=self.config.task_memory_mib,
            task_role=self.task_role,
        )
        self.task_definition.add_to_execution_role_policy(get_task_execution_policy())

        self.container = self.task_definition.add_container(
            self.config.container_name,
            image=ecs.ContainerImage.from_registry(self.config.image),
            cpu=self.config.container_cpu,
            memory_limit_mib=self.config.container_memory_mib,
            logging=ecs.LogDrivers.aws_logs(
                stream_prefix=self.config.log_stream_prefix,
                log_group=self.log_group,
            ),
        )
        self.container.add_port_mappings(
            ecs.PortMapping(
                container_port=self.config.container_port,
                protocol=ecs.Protocol.TCP,
            ),
        )

    def _create_service(self) -> None:
        logger.info(
            "Creating Fargate service with %d task(s) behind %s listener on port %d",
            self.config.desired_count,
            "public" if self.config.public_load_balancer else "internal",
            self.config.listener_port,
        )
        self.service = ecs_patterns.ApplicationLoadBalancedFargateService(
            self,
            "Service",
            cluster=self.cluster,
            task_definition=self.task_definition,
            public_load_balancer=self.config.public_load_balancer,
            desired_count=self.config.desired_count,
            listener_port=self.config.listener_port,
            circuit_breaker=ecs.DeploymentCircuitBreaker(enable=True, rollback=True),
        )

    def _apply_nag_suppressions(self) -> None:
        NagSuppressions.add_resource_suppressions(
            self.service,
            suppressions=[
                {
                    "id": "AwsSolutions-ELB2",
                    "reason": "Load balancer access logs are not collected for this service.",
                },
                {
                    "id": "AwsSolutions-EC23",
                    "reason": "The public load balancer accepts HTTP from the internet.",
                },
            ],
            apply_to_children=True,
        )
        NagSuppressions.add_resource_suppressions(
            self.task_definition,
            suppressions=[
                {
                    "id": "AwsSolutions-IAM5",
                    "reason": "ecr:GetAuthorizationToken does not support resource scoping.",
                },
            ],
            apply_to_children=True,
        )

    @property
    def fargate_service(self) -> ecs.FargateService:
        """The ECS service the pipeline deploys to."""
        return self.service.service

    @property
    def load_balancer_dns_name(self) -> str:
        """DNS name of the Application Load Balancer."""
        return self.service.load_balancer.load_balancer_dns_name
