"""Shared fixtures for synthesizing the Fargate CI/CD stacks under test."""

import os
import sys
from pathlib import Path

import pytest
from aws_cdk import Environment

# app.py and the stacks package live at the project root
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

TEST_ACCOUNT = "123456789012"
TEST_REGION = "us-east-1"


@pytest.fixture(scope="session", autouse=True)
def fake_aws_credentials():
    """Point CDK and boto3 at a fake account so synthesis never reaches AWS."""
    defaults = {
        "CDK_DEFAULT_ACCOUNT": TEST_ACCOUNT,
        "CDK_DEFAULT_REGION": TEST_REGION,
        "AWS_DEFAULT_REGION": TEST_REGION,
        "CDK_DISABLE_VERSION_CHECK": "true",
        "AWS_ACCESS_KEY_ID": "testing",
        "AWS_SECRET_ACCESS_KEY": "testing",
        "AWS_SESSION_TOKEN": "testing",
    }
    for name, value in defaults.items():
        os.environ.setdefault(name, value)


@pytest.fixture(scope="session")
def aws_environment():
    """Account and region the composed stack is pinned to."""
    return Environment(
        account=os.environ.get("CDK_DEFAULT_ACCOUNT", TEST_ACCOUNT),
        region=os.environ.get("CDK_DEFAULT_REGION", TEST_REGION),
    )
