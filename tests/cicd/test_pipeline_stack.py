"""
Test suite for the delivery pipeline construct.

Covers the ECR repository, the CodeBuild project with its GitHub source and
webhook, the build role permissions and the ordered pipeline stages.
"""

import re

import pytest
from aws_cdk import App, Stack
from aws_cdk import aws_ec2 as ec2
from aws_cdk.assertions import Match, Template

from stacks.cicd.pipeline_stack import DeliveryPipelineConstruct
from stacks.configs.deployment_config import PipelineConfig
from stacks.service.fargate_service import FargateServiceConstruct


def _synth(config: PipelineConfig | None = None) -> Template:
    app = App()
    stack = Stack(app, "TestStack")
    vpc = ec2.Vpc(stack, "TestVpc", max_azs=2)
    service = FargateServiceConstruct(stack, "FargateService", vpc=vpc)
    DeliveryPipelineConstruct(
        stack,
        "Delivery",
        cluster=service.cluster,
        service=service.fargate_service,
        container_name="flask-app",
        config=config,
    )
    return Template.from_stack(stack)


def _stages(template: Template) -> list[dict]:
    pipelines = template.find_resources("AWS::CodePipeline::Pipeline")
    assert len(pipelines) == 1
    return next(iter(pipelines.values()))["Properties"]["Stages"]


@pytest.fixture
def pipeline_template():
    return _synth()


class TestEcrRepository:
    def test_repository_created(self, pipeline_template):
        pipeline_template.resource_count_is("AWS::ECR::Repository", 1)
        pipeline_template.has_resource_properties(
            "AWS::ECR::Repository",
            {"ImageScanningConfiguration": {"ScanOnPush": True}},
        )


class TestBuildProject:
    def test_project_named_after_stack(self, pipeline_template):
        pipeline_template.has_resource_properties(
            "AWS::CodeBuild::Project",
            {"Name": "TestStack"},
        )

    def test_privileged_amazon_linux_environment(self, pipeline_template):
        pipeline_template.has_resource_properties(
            "AWS::CodeBuild::Project",
            {
                "Environment": Match.object_like(
                    {
                        "PrivilegedMode": True,
                        "Type": "LINUX_CONTAINER",
                        "Image": Match.string_like_regexp("amazonlinux2"),
                    },
                ),
            },
        )

    @pytest.mark.parametrize("variable", ["CLUSTER_NAME", "ECR_REPO_URI"])
    def test_environment_variables(self, pipeline_template, variable):
        pipeline_template.has_resource_properties(
            "AWS::CodeBuild::Project",
            {
                "Environment": Match.object_like(
                    {
                        "EnvironmentVariables": Match.array_with(
                            [Match.object_like({"Name": variable, "Type": "PLAINTEXT"})],
                        ),
                    },
                ),
            },
        )

    def test_github_source(self, pipeline_template):
        pipeline_template.has_resource_properties(
            "AWS::CodeBuild::Project",
            {
                "Source": Match.object_like(
                    {
                        "Type": "GITHUB",
                        "Location": "https://github.com/user-name/amazon-ecs-fargate-cdk-cicd.git",
                    },
                ),
            },
        )

    def test_webhook_filters_push_on_branch(self, pipeline_template):
        projects = pipeline_template.find_resources("AWS::CodeBuild::Project")
        triggers = next(iter(projects.values()))["Properties"]["Triggers"]
        assert triggers["Webhook"] is True
        filters = [item for group in triggers["FilterGroups"] for item in group]
        assert {"Type": "EVENT", "Pattern": "PUSH"} in filters
        head_refs = [item["Pattern"] for item in filters if item["Type"] == "HEAD_REF"]
        assert len(head_refs) == 1
        assert re.search("refs/heads/main", head_refs[0])

    def test_webhook_can_be_disabled(self):
        template = _synth(PipelineConfig(build_webhook=False))
        projects = template.find_resources("AWS::CodeBuild::Project")
        triggers = next(iter(projects.values()))["Properties"].get("Triggers", {})
        assert not triggers.get("Webhook")
        assert "FilterGroups" not in triggers

    def test_build_role_can_describe_cluster(self, pipeline_template):
        pipeline_template.has_resource_properties(
            "AWS::IAM::Policy",
            {
                "PolicyDocument": Match.object_like(
                    {
                        "Statement": Match.array_with(
                            [
                                Match.object_like(
                                    {"Action": Match.array_with(["ecs:DescribeCluster"])},
                                ),
                            ],
                        ),
                    },
                ),
            },
        )


class TestPipelineStages:
    def test_stage_order(self, pipeline_template):
        names = [stage["Name"] for stage in _stages(pipeline_template)]
        assert names == ["Source", "Build", "Approve", "Deploy-to-ECS"]

    def test_github_source_action(self, pipeline_template):
        action = _stages(pipeline_template)[0]["Actions"][0]
        assert action["Name"] == "GitHub_Source"
        assert action["ActionTypeId"]["Provider"] == "GitHub"
        assert action["ActionTypeId"]["Owner"] == "ThirdParty"
        configuration = action["Configuration"]
        assert configuration["Owner"] == "user-name"
        assert configuration["Repo"] == "amazon-ecs-fargate-cdk-cicd"
        assert configuration["Branch"] == "main"
        assert "/my/github/token" in configuration["OAuthToken"]

    def test_build_action(self, pipeline_template):
        action = _stages(pipeline_template)[1]["Actions"][0]
        assert action["ActionTypeId"]["Provider"] == "CodeBuild"
        assert len(action["OutputArtifacts"]) == 1

    def test_manual_approval_action(self, pipeline_template):
        action = _stages(pipeline_template)[2]["Actions"][0]
        assert action["ActionTypeId"]["Category"] == "Approval"
        assert action["ActionTypeId"]["Provider"] == "Manual"

    def test_ecs_deploy_action(self, pipeline_template):
        action = _stages(pipeline_template)[3]["Actions"][0]
        assert action["ActionTypeId"]["Category"] == "Deploy"
        assert action["ActionTypeId"]["Provider"] == "ECS"
        assert action["Configuration"]["FileName"] == "imagedefinitions.json"

    def test_approval_stage_can_be_disabled(self):
        template = _synth(PipelineConfig(require_manual_approval=False))
        names = [stage["Name"] for stage in _stages(template)]
        assert names == ["Source", "Build", "Deploy-to-ECS"]

    def test_codestar_connection_source(self):
        connection_arn = (
            "arn:aws:codestar-connections:us-east-1:123456789012:connection/abc"
        )
        template = _synth(PipelineConfig(connection_arn=connection_arn))
        action = _stages(template)[0]["Actions"][0]
        assert action["ActionTypeId"]["Provider"] == "CodeStarSourceConnection"
        assert action["Configuration"]["ConnectionArn"] == connection_arn
        assert (
            action["Configuration"]["FullRepositoryId"]
            == "user-name/amazon-ecs-fargate-cdk-cicd"
        )
        assert action["Configuration"]["BranchName"] == "main"

    def test_artifact_key_rotation(self, pipeline_template):
        pipeline_template.has_resource_properties(
            "AWS::KMS::Key",
            {"EnableKeyRotation": True},
        )


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
