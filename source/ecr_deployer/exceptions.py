# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Error taxonomy for a deployment run.

Every failure is surfaced the same way: a labeled message followed by
termination with a non-zero exit status.
"""


class DeploymentError(Exception):
    label = "Deployment failed"
    exit_code = 1

    def __init__(self, message: str, step: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.step = step

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class ToolMissing(DeploymentError):
    label = "Tool missing"


class Unauthenticated(DeploymentError):
    label = "Not authenticated"


class RepositoryOperationFailed(DeploymentError):
    label = "Repository operation failed"


class AuthenticationFailed(DeploymentError):
    label = "Registry authentication failed"


class ImageOperationFailed(DeploymentError):
    label = "Image operation failed"


class PolicyApplicationFailed(DeploymentError):
    label = "Lifecycle policy failed"


class InvalidConfiguration(DeploymentError):
    label = "Invalid configuration"
