from typing import Any

import aws_cdk as cdk
import cdk_nag
from aws_cdk import Aspects
from cdk_nag import NagSuppressions
from constructs import Construct

from stacks.cicd.pipeline_stack import DeliveryPipelineConstruct
from stacks.common.outputs import OutputManager
from stacks.configs.deployment_config import DeploymentConfig
from stacks.network.network_stack import NetworkStack
from stacks.service.auto_scaling import ServiceAutoScaling
from stacks.service.fargate_service import FargateServiceConstruct


class FargateCicdStack(cdk.Stack):
    """AWS CDK stack for a load balanced Fargate service with CI/CD.

    Deploys:
    - VPC with public and private subnets and a NAT gateway
    - ECS cluster and Fargate task definition for the application container
    - Internet facing Application Load Balancer in front of the service
    - CPU based target tracking autoscaling for the service
    - ECR repository, CodeBuild project and a four stage CodePipeline
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: DeploymentConfig | None = None,
        environment_name: str = "dev",
        **kwargs: Any,
    ) -> None:
        """Initializes the service and delivery pipeline stack.

        Args:
            scope: Parent construct scope.
            construct_id: Unique identifier for this construct.
            config: Optional deployment configuration, defaults to DeploymentConfig().
            environment_name: Environment name used for tagging network resources.
            **kwargs: Additional keyword arguments passed to the Stack.
        """
        super().__init__(scope, construct_id, **kwargs)

        self.config = config or DeploymentConfig()
        self.output_manager = OutputManager(self, self.stack_name)

        self.network = NetworkStack(
            self,
            "Network",
            environment_name=environment_name,
            config=self.config.network,
        )

        self.service = FargateServiceConstruct(
            self,
            "FargateService",
            vpc=self.network.vpc,
            config=self.config.service,
        )

        self.auto_scaling = ServiceAutoScaling(
            self,
            "AutoScaling",
            service=self.service.fargate_service,
            config=self.config.scaling,
        )

        self.delivery = DeliveryPipelineConstruct(
            self,
            "Delivery",
            cluster=self.service.cluster,
            service=self.service.fargate_service,
            container_name=self.config.service.container_name,
            config=self.config.pipeline,
        )

        self._configure_security_checks()
        self._create_outputs()

    def _configure_security_checks(self) -> None:
        """Configures AWS Solutions security checks for the stack.

        Resource level suppressions live next to the constructs they concern;
        the stack level ones cover resources generated by CDK itself.
        """
        Aspects.of(self).add(cdk_nag.AwsSolutionsChecks())
        NagSuppressions.add_stack_suppressions(
            stack=self,
            suppressions=[
                {
                    "id": "AwsSolutions-IAM4",
                    "reason": "AWS managed policies are used by CDK generated service roles",
                },
                {
                    "id": "AwsSolutions-L1",
                    "reason": "CDK generated custom resource Lambdas pin their own runtime",
                },
                {
                    "id": "AwsSolutions-ECS2",
                    "reason": "Task definitions created by the service pattern may carry environment variables",
                },
            ],
        )

    def _create_outputs(self) -> None:
        """Create CloudFormation outputs for the load balancer and pipeline."""
        self.output_manager.add_output_with_ssm(
            "LoadBalancerDNS",
            self.service.load_balancer_dns_name,
            "DNS name of the public Application Load Balancer",
            "Load-Balancer-DNS",
        )

        self.output_manager.add_output_with_ssm(
            "ClusterName",
            self.service.cluster.cluster_name,
            "ECS cluster name",
            "ECS-Cluster-Name",
        )

        self.output_manager.add_output_with_ssm(
            "EcrRepositoryUri",
            self.delivery.ecr_repository.repository_uri,
            "ECR repository receiving the built images",
            "ECR-Repository-URI",
        )

        self.output_manager.add_output_with_ssm(
            "PipelineName",
            self.delivery.pipeline_name,
            "CodePipeline deploying the service",
            "Pipeline-Name",
        )
