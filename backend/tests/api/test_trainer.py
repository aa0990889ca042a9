# tests/api/test_trainer.py
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.db.models import AdminLog, Package, TrainerClient, User
from ptcoach.services.subscription_ledger import SubscriptionLedger


def _url(client_id: int, purchase_id: int | None = None) -> str:
    base = f"/api/v1/trainer/clients/{client_id}/packages"
    return f"{base}/{purchase_id}" if purchase_id else base


async def test_assign_package_to_client(
    async_client: AsyncClient, db_session: AsyncSession, trainer_headers: dict,
    trainer_user: User, test_user: User, premium_package: Package
):
    # Act
    response = await async_client.post(
        _url(test_user.id), headers=trainer_headers,
        json={"package_id": premium_package.id, "reference": "EFT-2024-01"},
    )

    # Assert
    assert response.status_code == 201
    purchase = response.json()["purchase"]
    assert purchase["status"] == "ACTIVE"
    assert purchase["payment_reference"] == "EFT-2024-01"

    relation = (await db_session.execute(
        select(TrainerClient).where(TrainerClient.client_id == test_user.id)
    )).scalar_one()
    assert relation.trainer_id == trainer_user.id


async def test_assign_with_future_start(
    async_client: AsyncClient, trainer_headers: dict, test_user: User, premium_package: Package
):
    response = await async_client.post(
        _url(test_user.id), headers=trainer_headers,
        json={"package_id": premium_package.id, "start_date": "2099-01-01T00:00:00Z"},
    )

    assert response.status_code == 201
    purchase = response.json()["purchase"]
    assert purchase["status"] == "PENDING"
    assert purchase["payment_reference"] == "MANUAL_ASSIGNMENT"
    assert purchase["starts_at"].startswith("2099-01-01")


async def test_assign_unknown_client(async_client: AsyncClient, trainer_headers: dict, premium_package: Package):
    response = await async_client.post(_url(99999), headers=trainer_headers, json={"package_id": premium_package.id})
    assert response.status_code == 404


async def test_client_cannot_use_trainer_routes(
    async_client: AsyncClient, auth_headers: dict, test_user: User, premium_package: Package
):
    response = await async_client.post(_url(test_user.id), headers=auth_headers, json={"package_id": premium_package.id})
    assert response.status_code == 403


async def test_list_client_packages(
    async_client: AsyncClient, trainer_headers: dict, test_user: User,
    premium_package: Package, vip_package: Package
):
    await async_client.post(_url(test_user.id), headers=trainer_headers, json={"package_id": premium_package.id})
    await async_client.post(_url(test_user.id), headers=trainer_headers, json={"package_id": vip_package.id})

    response = await async_client.get(_url(test_user.id), headers=trainer_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["active_package"]["package"]["name"] == "VIP"
    assert sorted(p["status"] for p in data["purchases"]) == ["ACTIVE", "EXPIRED"]


async def test_list_requires_relation(async_client: AsyncClient, trainer_headers: dict, test_user: User):
    response = await async_client.get(_url(test_user.id), headers=trainer_headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "Bu danışanı yönetme yetkiniz yok"


async def test_cancel_client_package(
    async_client: AsyncClient, db_session: AsyncSession, trainer_headers: dict,
    test_user: User, auth_headers: dict, premium_package: Package
):
    assigned = await async_client.post(
        _url(test_user.id), headers=trainer_headers, json={"package_id": premium_package.id}
    )
    purchase_id = assigned.json()["purchase"]["id"]

    response = await async_client.delete(_url(test_user.id, purchase_id), headers=trainer_headers)

    assert response.status_code == 200
    assert response.json()["purchase"]["status"] == "CANCELLED"
    me = await async_client.get("/api/v1/user/subscription", headers=auth_headers)
    assert me.json()["active_package"] is None
    audit = (await db_session.execute(
        select(AdminLog).where(AdminLog.message == "Manuel paket iptali yapıldı")
    )).scalar_one()
    assert audit.context["purchase_id"] == purchase_id


async def test_cancel_without_relation(
    async_client: AsyncClient, db_session: AsyncSession, trainer_headers: dict,
    test_user: User, premium_package: Package
):
    purchase = await SubscriptionLedger(db_session).create_purchase(test_user.id, premium_package)

    response = await async_client.delete(_url(test_user.id, purchase.id), headers=trainer_headers)

    assert response.status_code == 403


async def test_cancel_purchase_of_another_client(
    async_client: AsyncClient, db_session: AsyncSession, trainer_headers: dict,
    test_user: User, create_user, premium_package: Package
):
    other = await create_user("baska@example.com")
    await async_client.post(_url(test_user.id), headers=trainer_headers, json={"package_id": premium_package.id})
    foreign = await SubscriptionLedger(db_session).create_purchase(other.id, premium_package)

    response = await async_client.delete(_url(test_user.id, foreign.id), headers=trainer_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "Paket kaydı bulunamadı"


async def test_admin_can_assign(
    async_client: AsyncClient, admin_headers: dict, test_user: User, premium_package: Package
):
    response = await async_client.post(_url(test_user.id), headers=admin_headers, json={"package_id": premium_package.id})
    assert response.status_code == 201
