"""
cloudrelease.integrations - External Service Integration Layer
================================================================

Adapters for the external services CloudRelease depends on. Each service is
abstracted behind an interface so the implementation can be swapped (real
boto3 clients in production, in-memory fakes in tests).

Sub-packages:
    aws/   - STS, Organizations, ECR and S3
"""

__all__: list[str] = []
