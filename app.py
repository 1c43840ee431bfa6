"""Entry point for the ECS Fargate service and CI/CD pipeline deployment.

This module synthesizes the CDK stack holding the VPC, the load balanced
Fargate service and the CodePipeline that builds and deploys it, supporting
both environment-based and profile-based configuration.

Where the stack is deployed:
    AWS_PROFILE selects a credentials profile whose account is looked up via STS.
    Without it CDK_DEFAULT_ACCOUNT and CDK_DEFAULT_REGION (or AWS_DEFAULT_REGION)
    are used. ENVIRONMENT names the stage and suffixes the stack name.

What is deployed:
    The network, service, scaling and pipeline sections of the CDK context
    (cdk.json or -c) override the defaults in stacks.configs.deployment_config.
"""

import logging
import os
from dataclasses import dataclass, replace

import boto3
from aws_cdk import App, Environment

from stacks.component import FargateCicdStack
from stacks.configs.deployment_config import load_deployment_config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"


@dataclass(frozen=True)
class StackConfiguration:
    """Naming and credentials for one deployment of the Fargate stack.

    Attributes:
        app_name: Prefix of the stack name and value of the Application tag.
        environment: Stage name such as dev or prod, appended to the stack name.
        aws_profile: Credentials profile used to resolve the target account.
    """

    app_name: str = "EcsFargateCicd"
    environment: str | None = None
    aws_profile: str | None = None

    @property
    def stack_name(self) -> str:
        """Stack name, suffixed with the stage when one is set."""
        if self.environment:
            return f"{self.app_name}Stack-{self.environment}"
        return f"{self.app_name}Stack"

    def with_app_name(self, app_name: str) -> "StackConfiguration":
        """Copy of this configuration under another app name."""
        return replace(self, app_name=app_name)


def create_deployment_environment(config: StackConfiguration) -> Environment:
    """Resolve the account and region the stack is deployed to.

    Args:
        config: Deployment naming and credentials.

    Returns:
        Environment pinned to the profile account, or the CDK defaults.
    """
    if config.aws_profile:
        session = boto3.Session(profile_name=config.aws_profile)
        sts = session.client("sts")
        account = sts.get_caller_identity()["Account"]
        logger.info("Resolved account %s from profile %s", account, config.aws_profile)
        return Environment(
            account=account,
            region=session.region_name or DEFAULT_REGION,
        )

    return Environment(
        account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
        region=os.environ.get(
            "CDK_DEFAULT_REGION",
            os.environ.get("AWS_DEFAULT_REGION", DEFAULT_REGION),
        ),
    )


def initialize_app(
    environment: str | None = None,
    aws_profile: str | None = None,
    context: dict | None = None,
) -> App:
    """Build the CDK app holding the Fargate service and its pipeline.

    Args:
        environment: Stage name, defaults to dev for tags and naming.
        aws_profile: Credentials profile for account lookup.
        context: Optional CDK context, merged over cdk.json values.

    Returns:
        App with the FargateCicdStack attached.

    Raises:
        ValueError: If the deployment configuration in context is invalid.
    """
    config = StackConfiguration(environment=environment, aws_profile=aws_profile)
    app = App(context=context)

    try:
        deployment_config = load_deployment_config(app)
    except ValueError:
        logger.exception("Invalid deployment configuration for %s", config.stack_name)
        raise

    env = create_deployment_environment(config)

    FargateCicdStack(
        app,
        config.stack_name,
        config=deployment_config,
        environment_name=environment or "dev",
        env=env,
        description=(
            "Load balanced ECS Fargate service with a CodePipeline for "
            "build, approval and deployment"
        ),
        tags={
            "Environment": environment or "dev",
            "Application": config.app_name,
            "ManagedBy": "AWS-CDK",
        },
    )

    return app


def main() -> None:
    """Synthesize the stack for the stage named in ENVIRONMENT."""
    environment = os.environ.get("ENVIRONMENT")
    aws_profile = os.environ.get("AWS_PROFILE")

    app = initialize_app(environment=environment, aws_profile=aws_profile)
    app.synth()


if __name__ == "__main__":
    main()
