# tests/api/test_admin.py
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.core.enums import LogLevel
from ptcoach.db.models import AdminLog, ManualPaymentAccount, Package, PaytrSetting, User
from ptcoach.services.audit import record_admin_log
from ptcoach.services.paytr_gateway import MASKED_SECRET
from ptcoach.services.subscription_ledger import SubscriptionLedger
from tests.utils.helpers import mock_paytr_response


# --- Пакеты ---

async def test_admin_routes_require_admin(async_client: AsyncClient, trainer_headers: dict):
    response = await async_client.get("/api/v1/admin/packages", headers=trainer_headers)
    assert response.status_code == 403


async def test_create_package(async_client: AsyncClient, db_session: AsyncSession, admin_headers: dict):
    payload = {
        "name": "Online Koçluk Pro",
        "price": 2500,
        "currency": "try",
        "duration_in_days": 60,
        "features": "Beslenme planı\nHaftalık görüşme, Antrenman programı",
    }

    response = await async_client.post("/api/v1/admin/packages", headers=admin_headers, json=payload)

    assert response.status_code == 201
    data = response.json()
    assert data["slug"] == "online-ko-luk-pro"
    assert data["currency"] == "TRY"
    assert data["features"] == ["Beslenme planı", "Haftalık görüşme", "Antrenman programı"]
    audit = (await db_session.execute(select(AdminLog).where(AdminLog.message == "Paket oluşturuldu"))).scalar_one()
    assert audit.context["package_id"] == data["id"]


async def test_create_package_duplicate_slug(
    async_client: AsyncClient, admin_headers: dict, premium_package: Package
):
    response = await async_client.post(
        "/api/v1/admin/packages", headers=admin_headers, json={"name": "Premium", "price": 100}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Bu slug başka bir pakette kullanılıyor"


async def test_create_package_requires_price(async_client: AsyncClient, admin_headers: dict):
    response = await async_client.post(
        "/api/v1/admin/packages", headers=admin_headers, json={"name": "Bedava", "price": 0}
    )
    assert response.status_code == 400


async def test_update_package(async_client: AsyncClient, admin_headers: dict, premium_package: Package):
    response = await async_client.put(
        f"/api/v1/admin/packages/{premium_package.id}", headers=admin_headers,
        json={"price": 1750, "is_popular": True, "headline": "  "},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["price"] == 1750
    assert data["is_popular"] is True
    assert data["headline"] is None
    assert data["slug"] == "premium"


async def test_admin_list_includes_inactive(async_client: AsyncClient, admin_headers: dict, create_package):
    await create_package("gizli", "Gizli", 100, is_active=False)

    response = await async_client.get("/api/v1/admin/packages", headers=admin_headers)

    assert [p["slug"] for p in response.json()["packages"]] == ["gizli"]


async def test_delete_unused_package(
    async_client: AsyncClient, db_session: AsyncSession, admin_headers: dict, premium_package: Package
):
    response = await async_client.delete(f"/api/v1/admin/packages/{premium_package.id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["deleted"] is True
    assert await db_session.get(Package, premium_package.id) is None


async def test_delete_used_package_deactivates(
    async_client: AsyncClient, db_session: AsyncSession, admin_headers: dict,
    test_user: User, premium_package: Package
):
    await SubscriptionLedger(db_session).create_purchase(test_user.id, premium_package)

    response = await async_client.delete(f"/api/v1/admin/packages/{premium_package.id}", headers=admin_headers)

    assert response.json()["deleted"] is False
    await db_session.refresh(premium_package)
    assert premium_package.is_active is False


# --- Настройки PayTR ---

async def test_get_paytr_settings_empty(async_client: AsyncClient, admin_headers: dict):
    response = await async_client.get("/api/v1/admin/paytr-settings", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"setting": None, "logs": []}


async def test_update_and_read_paytr_settings(async_client: AsyncClient, admin_headers: dict):
    payload = {
        "mode": "LIVE", "merchant_id": "778899", "merchant_key": "secret-key", "merchant_salt": "secret-salt",
        "max_installment": 6,
    }

    saved = await async_client.put("/api/v1/admin/paytr-settings", headers=admin_headers, json=payload)
    view = await async_client.get("/api/v1/admin/paytr-settings?limit=1", headers=admin_headers)

    assert saved.status_code == 200
    assert saved.json()["setting"]["merchant_key"] == MASKED_SECRET
    setting = view.json()["setting"]
    assert setting["mode"] == "LIVE"
    assert setting["merchant_salt"] == MASKED_SECRET
    assert "secret-key" not in view.text
    assert len(view.json()["logs"]) == 1
    assert view.json()["logs"][0]["action"] == "settings.updated"


async def test_update_paytr_settings_validation(async_client: AsyncClient, admin_headers: dict):
    response = await async_client.put(
        "/api/v1/admin/paytr-settings", headers=admin_headers, json={"merchant_id": "1"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Merchant key ve merchant salt alanları zorunludur"


async def test_paytr_settings_test_endpoint(
    async_client: AsyncClient, admin_headers: dict, paytr_setting: PaytrSetting, mocker
):
    mock_paytr_response(mocker, {"status": "success", "token": "probe"})
    ok = await async_client.post("/api/v1/admin/paytr-settings/test", headers=admin_headers, json={})

    assert ok.status_code == 200
    assert ok.json()["success"] is True
    assert ok.json()["token"] == "probe"

    mock_paytr_response(mocker, {"status": "failed", "reason": "Mağaza bulunamadı"})
    failed = await async_client.post("/api/v1/admin/paytr-settings/test", headers=admin_headers, json={})

    assert failed.status_code == 400
    assert failed.json()["success"] is False
    assert failed.json()["detail"] == "Mağaza bulunamadı"


# --- Журнал аудита ---

async def test_logs_pagination_and_filters(
    async_client: AsyncClient, db_session: AsyncSession, admin_headers: dict, admin_user: User
):
    for i in range(5):
        await record_admin_log(db_session, f"Olay {i}", source="subscription", actor=admin_user)
    await record_admin_log(db_session, "Mail hatası", level=LogLevel.ERROR, source="mail")
    await db_session.commit()

    first = await async_client.get("/api/v1/admin/logs?limit=4", headers=admin_headers)
    first_page = first.json()
    assert [i["message"] for i in first_page["items"]] == ["Mail hatası", "Olay 4", "Olay 3", "Olay 2"]
    assert first_page["has_more"] is True

    second = await async_client.get(
        f"/api/v1/admin/logs?limit=4&cursor={first_page['next_cursor']}", headers=admin_headers
    )
    assert [i["message"] for i in second.json()["items"]] == ["Olay 1", "Olay 0"]
    assert second.json()["has_more"] is False
    assert second.json()["next_cursor"] is None

    errors = await async_client.get("/api/v1/admin/logs?level=ERROR", headers=admin_headers)
    assert [i["source"] for i in errors.json()["items"]] == ["mail"]

    search = await async_client.get("/api/v1/admin/logs?q=olay 3", headers=admin_headers)
    assert [i["message"] for i in search.json()["items"]] == ["Olay 3"]

    by_source = await async_client.get("/api/v1/admin/logs?source=ALL", headers=admin_headers)
    assert len(by_source.json()["items"]) == 6


# --- Банковские счета ---

async def test_manual_payment_accounts_crud(
    async_client: AsyncClient, db_session: AsyncSession, admin_headers: dict
):
    created = await async_client.post(
        "/api/v1/admin/manual-payments", headers=admin_headers,
        json={"bank_name": "Akbank", "account_name": "PT Coach Ltd.", "iban": "TR12 0004 6000"},
    )
    assert created.status_code == 201
    account_id = created.json()["id"]

    updated = await async_client.put(
        f"/api/v1/admin/manual-payments/{account_id}", headers=admin_headers,
        json={"is_active": False, "description": "Eski hesap"},
    )
    assert updated.status_code == 200
    assert updated.json()["is_active"] is False
    assert updated.json()["bank_name"] == "Akbank"

    listing = await async_client.get("/api/v1/admin/manual-payments", headers=admin_headers)
    assert [a["id"] for a in listing.json()["accounts"]] == [account_id]

    deleted = await async_client.delete(f"/api/v1/admin/manual-payments/{account_id}", headers=admin_headers)
    assert deleted.status_code == 204
    assert await db_session.get(ManualPaymentAccount, account_id) is None

    messages = (await db_session.execute(
        select(AdminLog.message).where(AdminLog.source == "payments").order_by(AdminLog.id)
    )).scalars().all()
    assert messages == ["Havale hesabı eklendi", "Havale hesabı güncellendi", "Havale hesabı silindi"]


async def test_update_missing_account(async_client: AsyncClient, admin_headers: dict):
    response = await async_client.put(
        "/api/v1/admin/manual-payments/4040", headers=admin_headers, json={"bank_name": "X"}
    )
    assert response.status_code == 404
