# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Sets the retention lifecycle policy on an ECR repository.
"""
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from botocore.exceptions import BotoCoreError, ClientError
from ecr_deployer.exceptions import PolicyApplicationFailed
from ecr_deployer.powertools_logger import get_logger

if TYPE_CHECKING:
    from mypy_boto3_ecr.client import ECRClient
else:
    ECRClient = object

logger = get_logger("lifecycle_policy")


def build_lifecycle_policy(keep_images: int) -> dict[str, Any]:
    """Single rule expiring everything beyond the most recent keep_images images."""
    if keep_images < 1:
        raise ValueError(f"keep_images must be at least 1, got {keep_images}")

    return {
        "rules": [
            {
                "rulePriority": 1,
                "description": f"Keep last {keep_images} images",
                "selection": {
                    "tagStatus": "any",
                    "countType": "imageCountMoreThan",
                    "countNumber": keep_images,
                },
                "action": {"type": "expire"},
            }
        ]
    }


def write_policy_document(path: str, policy: dict[str, Any]) -> str:
    """Writes the policy JSON to path and returns the text that was written."""
    policy_text = json.dumps(policy, indent=2)
    try:
        Path(path).write_text(policy_text + "\n", encoding="utf-8")
    except OSError as e:
        raise PolicyApplicationFailed(
            f"Could not write lifecycle policy document to {path}: {e}",
            step="lifecycle",
        ) from e
    return policy_text


def read_policy_document(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise PolicyApplicationFailed(
            f"Could not read lifecycle policy document {path}: {e}",
            step="lifecycle",
        ) from e


def apply_lifecycle_policy(
    ecr: "ECRClient", repository_name: str, policy_text: str
) -> None:
    """
    Submits the policy, replacing whatever policy the repository had before.
    """
    try:
        ecr.put_lifecycle_policy(
            repositoryName=repository_name,
            lifecyclePolicyText=policy_text,
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(
            "Failed to set lifecycle policy",
            extra={"repositoryName": repository_name, "error": str(e)},
        )
        raise PolicyApplicationFailed(
            f"Failed to set lifecycle policy on {repository_name}: {e}",
            step="lifecycle",
        ) from e

    logger.info("Lifecycle policy set", extra={"repositoryName": repository_name})


def get_lifecycle_policy(ecr: "ECRClient", repository_name: str) -> Optional[str]:
    try:
        response = ecr.get_lifecycle_policy(repositoryName=repository_name)
    except ecr.exceptions.LifecyclePolicyNotFoundException:
        return None
    return response.get("lifecyclePolicyText")
