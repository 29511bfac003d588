from __future__ import annotations

import pytest
from fastapi import FastAPI

from r2gate.client import R2
from r2gate.settings import GatewaySettings, Settings, StoreContext
from services.api.main import create_app
from tests.fakes import CLIENT_ORIGIN, FakeS3


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in (
        "R2_BUCKET",
        "R2_ENDPOINT",
        "R2_ACCESS_KEY_ID",
        "R2_SECRET_ACCESS_KEY",
        "CLIENT_ORIGIN",
        "R2GATE_CONFIG",
        "LOG_LEVEL",
        "LOG_FILE",
        "JSON_LOGGING",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store_context() -> StoreContext:
    return StoreContext(
        bucket="uploads",
        endpoint="https://account.r2.example.com",
        access_key_id="AKIDEXAMPLE",
        secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
    )


@pytest.fixture
def fake_s3(store_context: StoreContext) -> FakeS3:
    return FakeS3(store_context)


@pytest.fixture
def r2(store_context: StoreContext, fake_s3: FakeS3) -> R2:
    return R2(context=store_context, client=fake_s3)


@pytest.fixture
def settings() -> Settings:
    return Settings(gateway=GatewaySettings(allowed_origin=CLIENT_ORIGIN))


@pytest.fixture
def app(settings: Settings, r2: R2) -> FastAPI:
    return create_app(settings=settings, r2=r2)

