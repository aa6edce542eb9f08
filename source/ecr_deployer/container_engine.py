# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Local container engine operations through the Docker SDK.
"""
from typing import Any, Iterable, Optional

import docker
from docker.errors import DockerException
from ecr_deployer.exceptions import (
    AuthenticationFailed,
    ImageOperationFailed,
    ToolMissing,
)
from ecr_deployer.powertools_logger import get_logger
from ecr_deployer.registry import RegistryCredentials

logger = get_logger("container_engine")


def connect(timeout: Optional[int] = None) -> docker.DockerClient:
    """Connects to the engine configured in the environment (DOCKER_HOST etc.)."""
    kwargs: dict[str, Any] = {}
    if timeout is not None:
        kwargs["timeout"] = timeout
    try:
        return docker.from_env(**kwargs)
    except DockerException as e:
        raise ToolMissing(
            f"Docker is not installed or the engine is not running. ({e})",
            step="preflight",
        ) from e


def engine_version(client: docker.DockerClient) -> str:
    try:
        version = client.version()
    except DockerException as e:
        raise ToolMissing(
            f"Docker engine did not answer a version query. ({e})", step="preflight"
        ) from e
    return str(version.get("Version", "unknown"))


def login(client: docker.DockerClient, credentials: RegistryCredentials) -> None:
    try:
        client.login(
            username=credentials.username,
            password=credentials.password,
            registry=credentials.endpoint,
            reauth=True,
        )
    except DockerException as e:
        logger.error(
            "Docker login failed",
            extra={"registry": credentials.endpoint, "error": str(e)},
        )
        raise AuthenticationFailed(
            f"Docker login to {credentials.endpoint} failed: {e}",
            step="authenticate",
        ) from e


def pull_image(client: docker.DockerClient, image: str) -> Any:
    """Pulls image and returns the SDK Image object."""
    try:
        pulled = client.images.pull(image)
    except DockerException as e:
        logger.error("Image pull failed", extra={"image": image, "error": str(e)})
        raise ImageOperationFailed(
            f"Could not pull {image}: {e}", step="pull"
        ) from e

    # all_tags pulls return a list
    if isinstance(pulled, list):
        if not pulled:
            raise ImageOperationFailed(f"No image returned for {image}", step="pull")
        pulled = pulled[0]
    return pulled


def repo_digest(image: Any) -> str:
    digests = image.attrs.get("RepoDigests") or []
    return digests[0] if digests else ""


def tag_image(image: Any, repository_uri: str, tag: str) -> str:
    target = f"{repository_uri}:{tag}"
    try:
        tagged = image.tag(repository_uri, tag=tag)
    except DockerException as e:
        raise ImageOperationFailed(
            f"Could not tag image as {target}: {e}", step="tag"
        ) from e
    if not tagged:
        raise ImageOperationFailed(f"Could not tag image as {target}", step="tag")
    return target


def _raise_on_push_error(progress: Iterable[dict[str, Any]], target: str) -> None:
    for line in progress:
        if "errorDetail" in line or "error" in line:
            detail = line.get("errorDetail", {}).get("message") or line.get("error")
            raise ImageOperationFailed(f"Push of {target} failed: {detail}", step="push")
        if "status" in line:
            logger.debug(
                "Push progress",
                extra={"target": target, "status": line["status"], "id": line.get("id", "")},
            )


def push_image(client: docker.DockerClient, repository_uri: str, tag: str) -> str:
    target = f"{repository_uri}:{tag}"
    try:
        progress = client.images.push(repository_uri, tag=tag, stream=True, decode=True)
        _raise_on_push_error(progress, target)
    except DockerException as e:
        logger.error("Image push failed", extra={"target": target, "error": str(e)})
        raise ImageOperationFailed(f"Push of {target} failed: {e}", step="push") from e

    logger.info("Image pushed", extra={"target": target})
    return target
