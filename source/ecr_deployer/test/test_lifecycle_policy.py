# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from ecr_deployer.exceptions import PolicyApplicationFailed
from ecr_deployer.lifecycle_policy import (
    apply_lifecycle_policy,
    build_lifecycle_policy,
    get_lifecycle_policy,
    read_policy_document,
    write_policy_document,
)
from moto import mock_aws

from .conftest import ecr_client


def test_build_lifecycle_policy_keeps_last_n_images():
    # ACT
    policy = build_lifecycle_policy(10)

    # ASSERT
    assert policy == {
        "rules": [
            {
                "rulePriority": 1,
                "description": "Keep last 10 images",
                "selection": {
                    "tagStatus": "any",
                    "countType": "imageCountMoreThan",
                    "countNumber": 10,
                },
                "action": {"type": "expire"},
            }
        ]
    }


def test_build_lifecycle_policy_rejects_zero():
    with pytest.raises(ValueError):
        build_lifecycle_policy(0)


def test_write_policy_document(tmp_path):
    # ARRANGE
    path = tmp_path / "lifecycle-policy.json"

    # ACT
    text = write_policy_document(str(path), build_lifecycle_policy(5))

    # ASSERT
    assert json.loads(path.read_text()) == build_lifecycle_policy(5)
    assert read_policy_document(str(path)).strip() == text


def test_write_policy_document_unwritable_path(tmp_path):
    # ARRANGE
    path = tmp_path / "missing-dir" / "lifecycle-policy.json"

    # ACT & ASSERT
    with pytest.raises(PolicyApplicationFailed) as exc_info:
        write_policy_document(str(path), build_lifecycle_policy(5))
    assert "Could not write lifecycle policy document" in str(exc_info.value)


@mock_aws
def test_apply_lifecycle_policy_twice_overwrites():
    # ARRANGE
    ecr = ecr_client()
    ecr.create_repository(repositoryName="mysql-project")
    first = json.dumps(build_lifecycle_policy(10))
    second = json.dumps(build_lifecycle_policy(3))

    # ACT
    apply_lifecycle_policy(ecr, "mysql-project", first)
    apply_lifecycle_policy(ecr, "mysql-project", second)

    # ASSERT
    current = get_lifecycle_policy(ecr, "mysql-project")
    assert current is not None
    assert json.loads(current) == build_lifecycle_policy(3)
    assert len(json.loads(current)["rules"]) == 1


@mock_aws
def test_get_lifecycle_policy_none_when_unset():
    # ARRANGE
    ecr = ecr_client()
    ecr.create_repository(repositoryName="mysql-project")

    # ACT & ASSERT
    assert get_lifecycle_policy(ecr, "mysql-project") is None


def test_apply_lifecycle_policy_client_error():
    # ARRANGE
    ecr = MagicMock()
    ecr.put_lifecycle_policy.side_effect = ClientError(
        {"Error": {"Code": "RepositoryNotFoundException", "Message": "not found"}},
        "PutLifecyclePolicy",
    )

    # ACT & ASSERT
    with pytest.raises(PolicyApplicationFailed) as exc_info:
        apply_lifecycle_policy(ecr, "mysql-project", "{}")
    assert exc_info.value.step == "lifecycle"
    assert isinstance(exc_info.value.__cause__, ClientError)
