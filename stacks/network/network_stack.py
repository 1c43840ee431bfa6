"""Network infrastructure for the ECS Fargate service.

This module provides the VPC the service and its load balancer run in:
public subnets for the internet facing Application Load Balancer and the NAT
gateway, private subnets with egress for the Fargate tasks, and optional VPC
Flow Logs for traffic auditing.

Architecture:
    - VPC with public and private subnets across up to ``max_azs`` AZs
    - Configurable number of NAT gateways (one by default for cost)
    - VPC Flow Logs delivered to a CloudWatch log group
"""

import logging
from typing import cast

from aws_cdk import RemovalPolicy, Tags
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_iam as iam
from aws_cdk import aws_logs as logs
from cdk_nag import NagSuppressions
from constructs import Construct

from stacks.configs.deployment_config import NetworkConfig

logger = logging.getLogger(__name__)

FLOW_LOGS_RETENTION: logs.RetentionDays = logs.RetentionDays.ONE_MONTH


class NetworkStack(Construct):
    """VPC for the load balanced Fargate service.

    Attributes:
        vpc: VPC with public and private subnets.
        flow_logs_role: IAM role used by VPC Flow Logs, if enabled.
        flow_logs: VPC Flow Logs configuration, if enabled.
        environment_name: Environment name used for tagging.
    """

    flow_logs_role: iam.Role | None
    flow_logs: ec2.FlowLog | None
    environment_name: str

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        environment_name: str = "dev",
        config: NetworkConfig | None = None,
    ) -> None:
        """Create the VPC and its flow logs.

        Args:
            scope: CDK construct scope for resource creation
            construct_id: Unique identifier for this construct
            environment_name: Environment name for tagging (e.g., "prod", "dev")
            config: Optional network configuration, defaults to NetworkConfig()
        """
        super().__init__(scope, construct_id)

        self.environment_name = environment_name.lower()
        self._config = config or NetworkConfig()
        self.flow_logs_role = None
        self.flow_logs = None

        self._create_vpc()
        if self._config.enable_flow_logs:
            self._create_flow_logs()
        else:
            NagSuppressions.add_resource_suppressions(
                self._vpc,
                [
                    {
                        "id": "AwsSolutions-VPC7",
                        "reason": "Flow Logs are disabled through the network configuration.",
                    },
                ],
            )

    def _create_vpc(self) -> None:
        """Create VPC with public subnets for the ALB and private ones for tasks."""
        logger.info(
            "Creating VPC %s across up to %d AZs with %d NAT gateway(s)",
            self._config.vpc_cidr,
            self._config.max_azs,
            self._config.nat_gateways,
        )
        self._vpc = ec2.Vpc(
            self,
            "ServiceVpc",
            ip_addresses=ec2.IpAddresses.cidr(self._config.vpc_cidr),
            max_azs=self._config.max_azs,
            nat_gateways=self._config.nat_gateways,
            enable_dns_hostnames=True,
            enable_dns_support=True,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    cidr_mask=24,
                    subnet_type=ec2.SubnetType.PUBLIC,
                ),
                ec2.SubnetConfiguration(
                    name="Private",
                    cidr_mask=24,
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                ),
            ],
        )

        Tags.of(self._vpc).add("Domain", "Networking")
        Tags.of(self._vpc).add("Environment", self.environment_name)

    def _create_flow_logs(self) -> None:
        """Configure VPC Flow Logs delivery to CloudWatch Logs."""
        flow_logs_log_group = logs.LogGroup(
            self,
            "VpcFlowLogsGroup",
            retention=FLOW_LOGS_RETENTION,
            removal_policy=RemovalPolicy.DESTROY,
        )

        self.flow_logs_role = iam.Role(
            self,
            "VpcFlowLogsRole",
            assumed_by=cast(
                "iam.IPrincipal",
                iam.ServicePrincipal("vpc-flow-logs.amazonaws.com"),
            ),
            inline_policies={
                "FlowLogsDeliveryRolePolicy": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            effect=iam.Effect.ALLOW,
                            actions=[
                                "logs:CreateLogStream",
                                "logs:PutLogEvents",
                                "logs:DescribeLogGroups",
                                "logs:DescribeLogStreams",
                            ],
                            resources=[
                                flow_logs_log_group.log_group_arn,
                                f"{flow_logs_log_group.log_group_arn}:*",
                            ],
                        ),
                    ],
                ),
            },
        )
        NagSuppressions.add_resource_suppressions(
            self.flow_logs_role,
            [
                {
                    "id": "AwsSolutions-IAM5",
                    "reason": "Flow Logs write to log streams created at runtime.",
                },
            ],
            apply_to_children=True,
        )

        self.flow_logs = ec2.FlowLog(
            self,
            "VpcFlowLogs",
            resource_type=ec2.FlowLogResourceType.from_vpc(self._vpc),
            destination=ec2.FlowLogDestination.to_cloud_watch_logs(
                flow_logs_log_group,
                self.flow_logs_role,
            ),
            traffic_type=ec2.FlowLogTrafficType.ALL,
        )

    @property
    def vpc(self) -> ec2.IVpc:
        """The VPC instance for the service."""
        return self._vpc

    @property
    def private_subnets(self) -> list[ec2.ISubnet]:
        """Private subnets the Fargate tasks run in."""
        return self._vpc.private_subnets

    @property
    def public_subnets(self) -> list[ec2.ISubnet]:
        """Public subnets for the load balancer and NAT gateway."""
        return self._vpc.public_subnets
