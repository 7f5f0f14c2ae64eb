import asyncio
import hashlib
import hmac
import json
import os
import time

os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_picmarket")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_picmarket")
os.environ.setdefault("STORAGE_BUCKET", "test-bucket")

import boto3
import pytest
from botocore.config import Config
from botocore.stub import Stubber
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from picmarket.core.config import settings
from picmarket.db.session import get_db
from picmarket.services.auth import create_access_token
from picmarket.services.storage import AssetStore, PrefixResolver, get_storage
from server import app

BUCKET = "test-bucket"


def sign_payload(payload: bytes, secret: str = None, timestamp: int = None) -> str:
    """Build a Stripe-Signature header for ``payload``."""
    secret = secret or settings.STRIPE_WEBHOOK_SECRET
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(event_type="checkout.session.completed", metadata=None,
               session_id="cs_test_1", event_id="evt_test_1") -> bytes:
    if metadata is None:
        metadata = {"userId": "U1", "itemId": "sunset.jpg"}
    event = {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": session_id, "object": "checkout.session", "metadata": metadata}},
    }
    return json.dumps(event).encode()


def run(coro):
    """Drive a coroutine from a synchronous TestClient test."""
    return asyncio.run(coro)


def auth_headers(uid="U1", email="u1@example.com"):
    return {"Authorization": f"Bearer {token_for(uid, email)}"}


def token_for(uid="U1", email="u1@example.com"):
    return create_access_token({"sub": uid, "email": email})


@pytest.fixture()
def db():
    return AsyncMongoMockClient()["picmarket_test"]


@pytest.fixture()
def s3():
    client = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        config=Config(signature_version="s3v4"),
    )
    with Stubber(client) as stubber:
        yield client, stubber


@pytest.fixture()
def store(s3):
    client, _ = s3
    return AssetStore(client, BUCKET, [PrefixResolver("protected-images/"), PrefixResolver("images/")])


@pytest.fixture()
def stubber(s3):
    return s3[1]


@pytest.fixture()
def client(db, store):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_storage] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def stub_head(stubber, key, found=True):
    params = {"Bucket": BUCKET, "Key": key}
    if found:
        stubber.add_response("head_object", {"ContentLength": 10}, params)
    else:
        stubber.add_client_error("head_object", service_error_code="404",
                                 http_status_code=404, expected_params=params)
