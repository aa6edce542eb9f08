# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import io
import json
import os
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError
from rich.console import Console

MOTO_ACCOUNT_ID = "123456789012"
REGION = "us-east-1"
SOURCE_IMAGE = "sohampawar1030/mysql-project:latest"
SOURCE_DIGEST = "sohampawar1030/mysql-project@sha256:" + "a" * 64

FAKE_MANIFEST = json.dumps(
    {
        "schemaVersion": 2,
        "mediaType": "application/vnd.docker.distribution.manifest.v2+json",
        "config": {
            "mediaType": "application/vnd.docker.container.image.v1+json",
            "size": 7023,
            "digest": "sha256:" + "b" * 64,
        },
        "layers": [
            {
                "mediaType": "application/vnd.docker.image.rootfs.diff.tar.gzip",
                "size": 32654,
                "digest": "sha256:" + "c" * 64,
            }
        ],
    }
)


@pytest.fixture(scope="module", autouse=True)
def aws_credentials():
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = REGION


@pytest.fixture
def capture_console():
    return Console(file=io.StringIO(), width=200, color_system=None)


def console_output(console: Console) -> str:
    return console.file.getvalue()  # type: ignore[attr-defined]


def build_fake_engine(push_to_ecr=None, fail_push_tags=()):
    """
    MagicMock standing in for docker.DockerClient.

    When push_to_ecr is set, every successful push writes the tag into that
    (moto backed) ECR client so the registry sees what the engine uploaded.
    """
    engine = MagicMock()
    engine.version.return_value = {"Version": "27.1.1"}

    image = MagicMock()
    image.attrs = {"RepoDigests": [SOURCE_DIGEST]}
    image.tag.return_value = True
    engine.images.pull.return_value = image

    def push(repository_uri, tag=None, stream=False, decode=False):
        if tag in fail_push_tags:
            return iter(
                [
                    {"status": "Preparing", "id": "c0ffee"},
                    {
                        "errorDetail": {"message": "net/http: TLS handshake timeout"},
                        "error": "net/http: TLS handshake timeout",
                    },
                ]
            )
        if push_to_ecr is not None:
            repository_name = repository_uri.split("/", 1)[1]
            try:
                push_to_ecr.put_image(
                    repositoryName=repository_name,
                    imageManifest=FAKE_MANIFEST,
                    imageManifestMediaType="application/vnd.docker.distribution.manifest.v2+json",
                    imageTag=tag,
                )
            except ClientError as e:
                if e.response["Error"]["Code"] != "ImageAlreadyExistsException":
                    raise
        return iter(
            [
                {"status": "Pushing", "id": "c0ffee"},
                {"status": f"{tag}: digest: sha256:{'d' * 64} size: 529"},
            ]
        )

    engine.images.push.side_effect = push
    return engine


def ecr_client():
    return boto3.client("ecr", region_name=REGION)
