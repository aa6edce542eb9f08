# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Tool availability checks. None of these contact AWS.
"""
from dataclasses import dataclass
from typing import Optional

import boto3
import botocore
import docker
from ecr_deployer import container_engine
from ecr_deployer.awsapi_cached_client import AWSCachedClient
from ecr_deployer.exceptions import ToolMissing
from ecr_deployer.powertools_logger import get_logger

logger = get_logger("preflight")

REQUIRED_SERVICES = ("ecr", "sts")


@dataclass(frozen=True)
class ToolReport:
    name: str
    version: str


def check_registry_sdk(aws: AWSCachedClient) -> ToolReport:
    """Confirms the SDK ships the service models a deployment calls."""
    available = set(aws.available_services())
    missing = [s for s in REQUIRED_SERVICES if s not in available]
    if missing:
        raise ToolMissing(
            f"AWS SDK has no model for: {', '.join(missing)}. "
            "Please install or upgrade boto3.",
            step="preflight",
        )
    return ToolReport(
        name="AWS SDK",
        version=f"boto3/{boto3.__version__} botocore/{botocore.__version__}",
    )


def check_container_engine(
    client: Optional[docker.DockerClient] = None,
) -> tuple[docker.DockerClient, ToolReport]:
    """Connects to the Docker engine and asks for its version."""
    engine = client or container_engine.connect()
    version = container_engine.engine_version(engine)
    logger.debug("Docker engine found", extra={"version": version})
    return engine, ToolReport(name="Docker", version=version)
