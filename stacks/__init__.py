"""CDK stacks and constructs for the ECS Fargate CI/CD deployment."""
