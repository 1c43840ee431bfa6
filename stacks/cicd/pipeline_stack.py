"""
Delivery pipeline for the ECS Fargate service.

This module defines the DeliveryPipelineConstruct which builds the container
image from the GitHub repository and rolls it out to the ECS service:

- ECR repository holding the built images
- CodeBuild project building and pushing the image on every push to the branch
- CodePipeline with Source, Build, Approve and Deploy-to-ECS stages
"""

import logging

from aws_cdk import Duration, RemovalPolicy, SecretValue, Stack
from aws_cdk import aws_codebuild as codebuild
from aws_cdk import aws_codepipeline as codepipeline
from aws_cdk import aws_codepipeline_actions as codepipeline_actions
from aws_cdk import aws_ecr as ecr
from aws_cdk import aws_ecs as ecs
from cdk_nag import NagSuppressions
from constructs import Construct

from stacks.common.policies import get_build_cluster_policy
from stacks.configs.deployment_config import PipelineConfig

from .build_spec import create_build_spec

logger = logging.getLogger(__name__)

SOURCE_STAGE = "Source"
BUILD_STAGE = "Build"
APPROVE_STAGE = "Approve"
DEPLOY_STAGE = "Deploy-to-ECS"


class DeliveryPipelineConstruct(Construct):
    """
    Construct for the container build and deployment pipeline.

    Attributes:
        ecr_repository: ECR repository receiving the built images
        build_project: CodeBuild project building and pushing the image
        source_output: Artifact holding the checked out source
        build_output: Artifact holding the image definitions file
        pipeline: CodePipeline orchestrating source, build, approval and deploy
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        cluster: ecs.ICluster,
        service: ecs.IBaseService,
        container_name: str,
        config: PipelineConfig | None = None,
    ) -> None:
        """
        Initialize DeliveryPipelineConstruct.

        Args:
            scope: Parent construct
            construct_id: Unique identifier for this construct
            cluster: ECS cluster the service runs in
            service: ECS service updated by the deploy stage
            container_name: Container whose image the build replaces
            config: Optional pipeline configuration, defaults to PipelineConfig()
        """
        super().__init__(scope, construct_id)

        self.config = config or PipelineConfig()
        self.cluster = cluster
        self.service = service
        self.container_name = container_name
        self.stack_name = Stack.of(self).stack_name

        self.ecr_repository = self._create_repository()
        self.build_project = self._create_build_project()
        self._grant_build_permissions()

        self.source_output = codepipeline.Artifact()
        self.build_output = codepipeline.Artifact()
        self.pipeline = self._create_pipeline()

        self._apply_nag_suppressions()

    def _create_repository(self) -> ecr.Repository:
        repository = ecr.Repository(
            self,
            "EcrRepo",
            image_scan_on_push=True,
            removal_policy=RemovalPolicy.DESTROY,
            empty_on_delete=True,
        )
        repository.add_lifecycle_rule(
            description="Expire untagged images after 30 days",
            tag_status=ecr.TagStatus.UNTAGGED,
            max_image_age=Duration.days(30),
        )
        return repository

    def _create_build_source(self) -> codebuild.ISource:
        """
        Create the GitHub source of the CodeBuild project.

        Returns:
            GitHub source, with a webhook limited to pushes on the branch
            when enabled
        """
        webhook_filters = None
        if self.config.build_webhook:
            webhook_filters = [
                codebuild.FilterGroup.in_event_of(
                    codebuild.EventAction.PUSH,
                ).and_branch_is(self.config.branch),
            ]

        return codebuild.Source.git_hub(
            owner=self.config.github_owner,
            repo=self.config.github_repo,
            webhook=self.config.build_webhook,
            webhook_filters=webhook_filters,
        )

    def _create_build_project(self) -> codebuild.Project:
        """
        Create CodeBuild project building and pushing the image.

        Returns:
            CodeBuild project named after the stack
        """
        logger.info(
            "Creating build project for %s/%s on branch %s",
            self.config.github_owner,
            self.config.github_repo,
            self.config.branch,
        )
        return codebuild.Project(
            self,
            "BuildProject",
            project_name=self.stack_name,
            source=self._create_build_source(),
            environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.AMAZON_LINUX_2_5,
                privileged=True,
            ),
            environment_variables={
                "CLUSTER_NAME": codebuild.BuildEnvironmentVariable(
                    value=self.cluster.cluster_name,
                ),
                "ECR_REPO_URI": codebuild.BuildEnvironmentVariable(
                    value=self.ecr_repository.repository_uri,
                ),
            },
            build_spec=create_build_spec(
                self.container_name,
                self.config.docker_context,
                self.config.image_definitions_file,
            ),
        )

    def _grant_build_permissions(self) -> None:
        self.ecr_repository.grant_pull_push(self.build_project)
        self.build_project.add_to_role_policy(
            get_build_cluster_policy(self.cluster.cluster_arn),
        )

    def _create_source_action(self) -> codepipeline_actions.Action:
        """
        Create the source action, preferring a CodeStar connection when configured.

        Returns:
            Source action writing to the source artifact
        """
        if self.config.connection_arn:
            return codepipeline_actions.CodeStarConnectionsSourceAction(
                action_name="GitHub_Source",
                owner=self.config.github_owner,
                repo=self.config.github_repo,
                branch=self.config.branch,
                connection_arn=self.config.connection_arn,
                output=self.source_output,
            )

        return codepipeline_actions.GitHubSourceAction(
            action_name="GitHub_Source",
            owner=self.config.github_owner,
            repo=self.config.github_repo,
            branch=self.config.branch,
            oauth_token=SecretValue.secrets_manager(self.config.oauth_token_secret_name),
            output=self.source_output,
        )

    def _create_pipeline(self) -> codepipeline.Pipeline:
        """
        Create CodePipeline for orchestration.

        Returns:
            CodePipeline with source, build, optional approval and deploy stages
        """
        stages = [
            codepipeline.StageProps(
                stage_name=SOURCE_STAGE,
                actions=[self._create_source_action()],
            ),
            codepipeline.StageProps(
                stage_name=BUILD_STAGE,
                actions=[
                    codepipeline_actions.CodeBuildAction(
                        action_name="CodeBuild",
                        project=self.build_project,
                        input=self.source_output,
                        outputs=[self.build_output],
                    ),
                ],
            ),
        ]

        if self.config.require_manual_approval:
            stages.append(
                codepipeline.StageProps(
                    stage_name=APPROVE_STAGE,
                    actions=[
                        codepipeline_actions.ManualApprovalAction(
                            action_name="Approve",
                        ),
                    ],
                ),
            )

        stages.append(
            codepipeline.StageProps(
                stage_name=DEPLOY_STAGE,
                actions=[
                    codepipeline_actions.EcsDeployAction(
                        action_name="DeployAction",
                        service=self.service,
                        image_file=self.build_output.at_path(
                            self.config.image_definitions_file,
                        ),
                    ),
                ],
            ),
        )

        logger.info(
            "Creating pipeline with stages %s",
            [stage.stage_name for stage in stages],
        )
        return codepipeline.Pipeline(
            self,
            "Pipeline",
            stages=stages,
            enable_key_rotation=True,
        )

    def _apply_nag_suppressions(self) -> None:
        """
        Apply CDK Nag suppressions to resources.
        """
        NagSuppressions.add_resource_suppressions(
            self.build_project,
            suppressions=[
                {
                    "id": "AwsSolutions-CB3",
                    "reason": "Privileged mode is required to run the Docker daemon for image builds",
                },
                {
                    "id": "AwsSolutions-CB4",
                    "reason": "Build artifacts only contain the image definitions file",
                },
                {
                    "id": "AwsSolutions-IAM5",
                    "reason": "ecr:GetAuthorizationToken and CodeBuild log streams require wildcards",
                },
            ],
            apply_to_children=True,
        )

        NagSuppressions.add_resource_suppressions(
            self.pipeline,
            suppressions=[
                {
                    "id": "AwsSolutions-S1",
                    "reason": "Pipeline artifact bucket does not need server access logs",
                },
                {
                    "id": "AwsSolutions-IAM5",
                    "reason": "Pipeline role needs wildcards for artifacts and ECS deployments",
                },
            ],
            apply_to_children=True,
        )

    @property
    def pipeline_name(self) -> str:
        """Name of the delivery pipeline."""
        return self.pipeline.pipeline_name
