"""IAM policy statements shared by the service and pipeline constructs."""

from aws_cdk import aws_iam as iam

ECR_READ_ACTIONS: list[str] = [
    "ecr:GetAuthorizationToken",
    "ecr:BatchCheckLayerAvailability",
    "ecr:GetDownloadUrlForLayer",
    "ecr:BatchGetImage",
]


def get_task_execution_policy() -> iam.PolicyStatement:
    """Get policy statement letting the task execution role pull images and log.

    Returns:
        PolicyStatement with ECR read and CloudWatch Logs write permissions.
    """
    return iam.PolicyStatement(
        effect=iam.Effect.ALLOW,
        actions=[
            *ECR_READ_ACTIONS,
            "logs:CreateLogStream",
            "logs:PutLogEvents",
        ],
        resources=["*"],
    )


def get_build_cluster_policy(cluster_arn: str) -> iam.PolicyStatement:
    """Get policy statement letting the build project inspect the ECS cluster.

    Args:
        cluster_arn: ARN of the cluster the pipeline deploys to.

    Returns:
        PolicyStatement with cluster describe and ECR read permissions.
    """
    return iam.PolicyStatement(
        actions=[
            "ecs:DescribeCluster",
            *ECR_READ_ACTIONS,
        ],
        resources=[cluster_arn],
    )
