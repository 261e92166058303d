import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from deploy_checklist.db import get_session
from deploy_checklist.main import app


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def deployment_fields():
    return {
        "merchant_name": "Acme Cafe",
        "device_type": "Window",
        "wifi_ssid": "Acme_WiFi",
        "static_ip": "192.168.1.50",
        "anydesk_id": "123456789",
        "printer_ip": "Kitchen (192.168.1.100)",
    }


def fake_photo(size, name="photo.jpg"):
    prefix = "data:image/jpeg;base64,"
    return {"filename": name, "data": prefix + "A" * (size - len(prefix))}
