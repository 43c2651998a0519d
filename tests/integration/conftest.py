"""LocalStack fixtures: seeded mapping tables and a survey bucket."""

from __future__ import annotations

import json
import os
import sys
import uuid

import boto3
import pytest
from botocore.exceptions import BotoCoreError, ClientError

LOCALSTACK_URL = os.environ.get("LOCALSTACK_URL", "http://localhost:4566")
REGION = "us-east-1"
TABLE_SUFFIX = "-inttest"
ROW_PREFIX = "surveys"


def _localstack_reachable() -> bool:
    try:
        boto3.client("dynamodb", region_name=REGION, endpoint_url=LOCALSTACK_URL).list_tables()
    except (BotoCoreError, ClientError):
        return False
    return True


skip_no_localstack = pytest.mark.skipif(
    not _localstack_reachable(),
    reason=f"no LocalStack at {LOCALSTACK_URL}",
)


@pytest.fixture(scope="session")
def localstack_ddb():
    return boto3.resource("dynamodb", region_name=REGION, endpoint_url=LOCALSTACK_URL)


@pytest.fixture(scope="session")
def localstack_s3():
    return boto3.client("s3", region_name=REGION, endpoint_url=LOCALSTACK_URL)


@pytest.fixture(scope="session")
def seeded_tables(localstack_ddb):
    """Mapping tables created and filled from ``config/mapping_seed.json``.

    Returns the table suffix the stores must be built with.
    """
    sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", "scripts"))
    from seed_dynamodb import create_tables, seed_mapping_data

    create_tables(localstack_ddb, suffix=TABLE_SUFFIX)
    seed_mapping_data(localstack_ddb, suffix=TABLE_SUFFIX)
    return TABLE_SUFFIX


@pytest.fixture
def survey_bucket(localstack_s3):
    """A fresh bucket plus an ``upload(sources, rows_by_id)`` helper.

    ``sources`` are ``SurveySource`` models written to the manifest and
    ``rows_by_id`` maps a source id to its raw rows.
    """
    bucket = f"benchrecon-inttest-{uuid.uuid4().hex[:8]}"
    localstack_s3.create_bucket(Bucket=bucket)

    def upload(sources, rows_by_id):
        manifest = [source.model_dump(mode="json") for source in sources]
        localstack_s3.put_object(Bucket=bucket, Key=f"{ROW_PREFIX}/sources.json",
                                 Body=json.dumps(manifest))
        for source_id, rows in rows_by_id.items():
            localstack_s3.put_object(Bucket=bucket, Key=f"{ROW_PREFIX}/rows/{source_id}.json",
                                     Body=json.dumps(rows))
        return bucket

    return upload
