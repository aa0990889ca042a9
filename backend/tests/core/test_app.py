# tests/core/test_app.py
from fastapi import APIRouter
from httpx import AsyncClient

from ptcoach.core.exceptions import (
    InvalidRequestError, NotFoundError, PaymentGatewayError, PaymentGatewayUnavailableError,
    PaymentNotConfiguredError, PermissionDeniedError,
)


async def test_health(async_client: AsyncClient):
    response = await async_client.get("/health")
    assert response.json() == {"status": "ok"}


def test_exception_status_codes():
    assert InvalidRequestError("x").status_code == 400
    assert PermissionDeniedError("x").status_code == 403
    assert NotFoundError("x").status_code == 404
    assert PaymentGatewayUnavailableError("x").status_code == 500
    assert PaymentGatewayError("x", response={"status": "failed"}).status_code == 502
    assert PaymentNotConfiguredError("x").status_code == 503


async def test_user_action_exception_is_rendered_as_detail(test_app, async_client: AsyncClient):
    router = APIRouter()

    @router.get("/boom")
    async def boom():
        raise PermissionDeniedError("Bu işlem için yetkiniz yok")

    test_app.include_router(router)

    response = await async_client.get("/boom")

    assert response.status_code == 403
    assert response.json() == {"detail": "Bu işlem için yetkiniz yok"}
