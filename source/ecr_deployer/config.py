# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import dataclasses
import os
from dataclasses import dataclass
from typing import Any

from ecr_deployer.exceptions import InvalidConfiguration

DEFAULT_IMAGE = "sohampawar1030/mysql-project:latest"
DEFAULT_REPOSITORY_NAME = "mysql-project"
DEFAULT_REGION = "us-east-1"
DEFAULT_VERSION_TAG = "v1.0"
LATEST_TAG = "latest"
DEFAULT_KEEP_IMAGES = 10
DEFAULT_POLICY_PATH = "/tmp/lifecycle-policy.json"


@dataclass(frozen=True)
class DeploymentConfig:
    """Values a single deployment run is parameterized with."""

    image: str = DEFAULT_IMAGE
    repository_name: str = DEFAULT_REPOSITORY_NAME
    region: str = DEFAULT_REGION
    version_tag: str = DEFAULT_VERSION_TAG
    latest_tag: str = LATEST_TAG
    keep_images: int = DEFAULT_KEEP_IMAGES
    policy_path: str = DEFAULT_POLICY_PATH

    def __post_init__(self) -> None:
        if self.keep_images < 1:
            raise InvalidConfiguration(
                f"keep_images must be at least 1, got {self.keep_images}",
                step="config",
            )

    @property
    def tags(self) -> tuple[str, str]:
        return (self.latest_tag, self.version_tag)

    def with_region(self, region: str) -> "DeploymentConfig":
        # No validation here, an invalid region is rejected by the first AWS call
        return dataclasses.replace(self, region=region or DEFAULT_REGION)

    @classmethod
    def from_env(cls, **overrides: Any) -> "DeploymentConfig":
        """
        Builds a config from environment variables.
        Keyword overrides whose value is None are ignored.
        """
        values: dict[str, Any] = {
            "image": os.getenv("ECR_DEPLOY_IMAGE", DEFAULT_IMAGE),
            "repository_name": os.getenv(
                "ECR_DEPLOY_REPOSITORY", DEFAULT_REPOSITORY_NAME
            ),
            "region": os.getenv(
                "AWS_REGION", os.getenv("AWS_DEFAULT_REGION", DEFAULT_REGION)
            ),
            "version_tag": os.getenv("ECR_DEPLOY_VERSION_TAG", DEFAULT_VERSION_TAG),
            "keep_images": _int_from_env("ECR_DEPLOY_KEEP_IMAGES", DEFAULT_KEEP_IMAGES),
            "policy_path": os.getenv("ECR_DEPLOY_POLICY_PATH", DEFAULT_POLICY_PATH),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidConfiguration(
            f"{name} must be an integer, got '{raw}'", step="config"
        ) from e


def is_digest_pinned(image: str) -> bool:
    return "@sha256:" in image
