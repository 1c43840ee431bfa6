"""CI/CD module building the container image and deploying it to ECS."""

from .build_spec import build_spec_definition, create_build_spec
from .pipeline_stack import DeliveryPipelineConstruct

__all__ = [
    "DeliveryPipelineConstruct",
    "build_spec_definition",
    "create_build_spec",
]
