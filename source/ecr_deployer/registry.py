# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Registry provider operations: identity, repository lifecycle, authorization
tokens and image listing.
"""
import base64
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from botocore.exceptions import BotoCoreError, ClientError
from ecr_deployer.exceptions import (
    AuthenticationFailed,
    RepositoryOperationFailed,
    Unauthenticated,
)
from ecr_deployer.powertools_logger import get_logger

if TYPE_CHECKING:
    from mypy_boto3_ecr.client import ECRClient
    from mypy_boto3_sts.client import STSClient
else:
    ECRClient = object
    STSClient = object

logger = get_logger("registry")

SCAN_ON_PUSH = {"scanOnPush": True}
ENCRYPTION = {"encryptionType": "AES256"}


@dataclass(frozen=True)
class RepositoryInfo:
    name: str
    uri: str
    registry_id: str
    created: bool = False


@dataclass(frozen=True)
class RegistryCredentials:
    username: str
    password: str = field(repr=False)
    endpoint: str


@dataclass(frozen=True)
class ImageSummary:
    digest: str
    tags: tuple[str, ...] = ()
    pushed_at: Optional[datetime] = None
    size_bytes: int = 0


def _error_code(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "")
    return ""


def get_account_id(sts: "STSClient") -> str:
    """Confirms the caller is authenticated and returns its account id."""
    try:
        identity = sts.get_caller_identity()
    except (ClientError, BotoCoreError) as e:
        logger.error(
            "Credential check failed",
            extra={"errorCode": _error_code(e), "error": str(e)},
        )
        raise Unauthenticated(
            "AWS credentials are not configured. Please run 'aws configure'. "
            f"({e})",
            step="credentials",
        ) from e

    account_id: str = identity["Account"]
    logger.debug(
        "Resolved caller identity",
        extra={"accountId": account_id, "arn": identity.get("Arn", "")},
    )
    return account_id


def describe_repository(ecr: "ECRClient", repository_name: str) -> Optional[dict]:
    """Returns the repository description, or None when it does not exist."""
    try:
        response = ecr.describe_repositories(repositoryNames=[repository_name])
    except ecr.exceptions.RepositoryNotFoundException:
        return None

    repositories = response.get("repositories", [])
    if not repositories:
        return None
    return dict(repositories[0])


def create_repository(ecr: "ECRClient", repository_name: str) -> dict:
    response = ecr.create_repository(
        repositoryName=repository_name,
        imageScanningConfiguration=SCAN_ON_PUSH,
        encryptionConfiguration=ENCRYPTION,
    )
    return dict(response["repository"])


def ensure_repository(ecr: "ECRClient", repository_name: str) -> RepositoryInfo:
    """
    Creates the repository if it is absent and resolves its URI.

    An existing repository is reused. The URI always comes from a describe
    call made after the existence check.
    """
    created = False
    try:
        if describe_repository(ecr, repository_name) is None:
            logger.info(
                "Creating repository", extra={"repositoryName": repository_name}
            )
            try:
                create_repository(ecr, repository_name)
                created = True
            except ecr.exceptions.RepositoryAlreadyExistsException:
                logger.info(
                    "Repository created concurrently, reusing it",
                    extra={"repositoryName": repository_name},
                )
        else:
            logger.info(
                "Repository already exists, skipping creation",
                extra={"repositoryName": repository_name},
            )

        repository = describe_repository(ecr, repository_name)
    except (ClientError, BotoCoreError) as e:
        logger.error(
            "Repository ensure failed",
            extra={"repositoryName": repository_name, "error": str(e)},
        )
        raise RepositoryOperationFailed(
            f"Could not ensure repository {repository_name}: {e}",
            step="repository",
        ) from e

    if repository is None:
        raise RepositoryOperationFailed(
            f"Repository {repository_name} not found after ensuring it exists",
            step="repository",
        )

    return RepositoryInfo(
        name=repository["repositoryName"],
        uri=repository["repositoryUri"],
        registry_id=repository["registryId"],
        created=created,
    )


def get_registry_credentials(ecr: "ECRClient") -> RegistryCredentials:
    """Fetches a fresh authorization token and decodes it into a login pair."""
    try:
        response = ecr.get_authorization_token()
        authorization = response["authorizationData"][0]
        decoded = base64.b64decode(authorization["authorizationToken"]).decode()
        username, password = decoded.split(":", 1)
        endpoint = authorization["proxyEndpoint"]
    except (ClientError, BotoCoreError) as e:
        logger.error("Authorization token request failed", extra={"error": str(e)})
        raise AuthenticationFailed(
            f"Could not obtain an authorization token: {e}", step="authenticate"
        ) from e
    except (KeyError, IndexError, ValueError) as e:
        raise AuthenticationFailed(
            f"Malformed authorization token: {e}", step="authenticate"
        ) from e

    return RegistryCredentials(
        username=username,
        password=password,
        endpoint=endpoint,
    )


def _to_image_summary(detail: dict[str, Any]) -> ImageSummary:
    return ImageSummary(
        digest=detail.get("imageDigest", ""),
        tags=tuple(sorted(detail.get("imageTags", []))),
        pushed_at=detail.get("imagePushedAt"),
        size_bytes=int(detail.get("imageSizeInBytes", 0)),
    )


def list_repository_images(
    ecr: "ECRClient", repository_name: str
) -> list[ImageSummary]:
    """Lists every image in the repository, newest first."""
    images: list[ImageSummary] = []
    try:
        paginator = ecr.get_paginator("describe_images")
        for page in paginator.paginate(repositoryName=repository_name):
            images.extend(_to_image_summary(d) for d in page.get("imageDetails", []))
    except (ClientError, BotoCoreError) as e:
        logger.error(
            "Image listing failed",
            extra={"repositoryName": repository_name, "error": str(e)},
        )
        raise RepositoryOperationFailed(
            f"Could not list images in {repository_name}: {e}", step="verify"
        ) from e

    images.sort(
        key=lambda i: i.pushed_at.timestamp() if i.pushed_at else 0.0, reverse=True
    )
    return images
