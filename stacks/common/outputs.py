"""Output Manager for AWS CDK stacks.

This module provides a class that consistently handles CloudFormation outputs
for the Fargate CI/CD stack and mirrors them into SSM Parameter Store.
"""

from aws_cdk import CfnOutput
from aws_cdk import aws_ssm as ssm
from constructs import Construct


class OutputManager:
    """Consistent management of CloudFormation outputs and SSM Parameters.

    Attributes:
        scope: The construct for which outputs are being managed.
        stack_name: The name of the stack owning the outputs.
    """

    def __init__(self, scope: Construct, stack_name: str) -> None:
        self.scope = scope
        self.stack_name = stack_name

    def add_output_with_ssm(
        self,
        id_: str,
        value: str,
        description: str,
        export_name: str,
    ) -> CfnOutput:
        """Creates a CloudFormation output and a matching SSM Parameter.

        The export name is prefixed with the stack name so several stages can
        be deployed into one account and region.

        Args:
            id_: Unique identifier for the output/parameter.
            value: The value of the property returned by the aws cloudformation describe-stacks command.
            description: A String type that describes the output value.
            export_name: The name used to export the value of this output across stacks.

        Returns:
            The created CfnOutput.
        """
        output = CfnOutput(
            self.scope,
            id_,
            value=value,
            export_name=f"{self.stack_name}-{export_name}",
            description=description,
        )
        ssm.StringParameter(
            self.scope,
            f"{id_}Parameter",
            parameter_name=f"/infrastructure/{self.stack_name}/{export_name}".lower(),
            string_value=value,
            description=description,
        )
        return output
