"""
Test suite for the CDK application entry point.
"""

from unittest.mock import MagicMock, patch

import pytest
from aws_cdk import App

from app import (
    DEFAULT_REGION,
    StackConfiguration,
    create_deployment_environment,
    initialize_app,
    main,
)


class TestStackConfiguration:
    def test_default_stack_name(self):
        assert StackConfiguration().stack_name == "EcsFargateCicdStack"

    def test_stack_name_with_environment(self):
        config = StackConfiguration(environment="prod")
        assert config.stack_name == "EcsFargateCicdStack-prod"

    def test_with_app_name(self):
        config = StackConfiguration(environment="dev").with_app_name("Demo")
        assert config.app_name == "Demo"
        assert config.environment == "dev"
        assert config.stack_name == "DemoStack-dev"


class TestDeploymentEnvironment:
    def test_environment_from_cdk_defaults(self, monkeypatch):
        monkeypatch.setenv("CDK_DEFAULT_ACCOUNT", "111111111111")
        monkeypatch.setenv("CDK_DEFAULT_REGION", "eu-west-1")
        env = create_deployment_environment(StackConfiguration())
        assert env.account == "111111111111"
        assert env.region == "eu-west-1"

    def test_region_falls_back_to_default(self, monkeypatch):
        monkeypatch.delenv("CDK_DEFAULT_REGION", raising=False)
        monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
        env = create_deployment_environment(StackConfiguration())
        assert env.region == DEFAULT_REGION

    def test_environment_from_profile(self):
        session = MagicMock()
        session.region_name = None
        session.client.return_value.get_caller_identity.return_value = {
            "Account": "222222222222",
        }
        with patch("boto3.Session", return_value=session) as session_cls:
            env = create_deployment_environment(
                StackConfiguration(aws_profile="deploy"),
            )
        session_cls.assert_called_once_with(profile_name="deploy")
        session.client.assert_called_once_with("sts")
        assert env.account == "222222222222"
        assert env.region == DEFAULT_REGION


class TestInitializeApp:
    def test_creates_environment_stack(self):
        app = initialize_app(environment="test")
        assert app.node.try_find_child("EcsFargateCicdStack-test") is not None

    def test_default_stack_name(self):
        app = initialize_app()
        assert app.node.try_find_child("EcsFargateCicdStack") is not None

    def test_invalid_context_raises(self):
        with pytest.raises(ValueError, match="desired_count"):
            initialize_app(
                context={"service": {"desired_count": 10}, "scaling": {"max_capacity": 6}},
            )

    def test_non_object_context_section_raises(self):
        with pytest.raises(ValueError, match="must be an object"):
            initialize_app(context={"pipeline": "main"})


class TestMain:
    def test_synthesizes_stage_from_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "staging")
        monkeypatch.delenv("AWS_PROFILE", raising=False)
        with patch.object(App, "synth", autospec=True) as synth:
            main()
        synth.assert_called_once()
        app = synth.call_args.args[0]
        assert app.node.try_find_child("EcsFargateCicdStack-staging") is not None


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
