import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.core.errors import GENERIC_MESSAGE, ErrorKind, ServiceError, register_exception_handlers


@pytest.mark.parametrize(
    ("kind", "status"),
    [
        (ErrorKind.INVALID_REQUEST, 400),
        (ErrorKind.INVALID_STATE, 401),
        (ErrorKind.EXPIRED_STATE, 400),
        (ErrorKind.PROVIDER_REJECTED, 401),
        (ErrorKind.PROVIDER_PROTOCOL, 500),
        (ErrorKind.PROVIDER_UNAVAILABLE, 502),
        (ErrorKind.NOT_CONFIGURED, 503),
        (ErrorKind.CONFLICT, 409),
        (ErrorKind.NOT_FOUND, 404),
        (ErrorKind.DISABLED, 403),
        (ErrorKind.INVALID_TEMPLATE, 400),
        (ErrorKind.MISSING_VARIABLE, 500),
        (ErrorKind.UNAUTHORIZED, 401),
        (ErrorKind.INTERNAL, 500),
    ],
)
def test_status_codes(kind, status):
    assert kind.status_code == status
    assert ServiceError(kind).status_code == status


def test_default_message():
    assert ServiceError(ErrorKind.NOT_FOUND).message == "Not found"


def test_server_side_details_are_hidden():
    error = ServiceError(ErrorKind.MISSING_VARIABLE, "Variable 'n' not found")
    assert error.public_message == GENERIC_MESSAGE

    error = ServiceError(ErrorKind.CONFLICT, "Command already exists.")
    assert error.public_message == "Command already exists."


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/service-error")
    async def service_error():
        raise ServiceError(ErrorKind.DISABLED, "This channel is disabled.")

    @app.get("/hidden-error")
    async def hidden_error():
        raise ServiceError(ErrorKind.PROVIDER_PROTOCOL, "token endpoint returned HTTP 400")

    @app.get("/crash")
    async def crash():
        raise RuntimeError("secret internals")

    @app.get("/typed")
    async def typed(page: int):
        return {"page": page}

    return TestClient(app, raise_server_exceptions=False)


def test_service_error_response(client):
    response = client.get("/service-error")

    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "This channel is disabled."}


def test_hidden_error_response(client):
    response = client.get("/hidden-error")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": GENERIC_MESSAGE}


def test_unexpected_exception_is_generic(client):
    response = client.get("/crash")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": GENERIC_MESSAGE}
    assert "secret" not in response.text


def test_validation_error_is_invalid_request(client):
    response = client.get("/typed", params={"page": "abc"})

    assert response.status_code == 400
    assert response.json()["success"] is False
