import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.core.enums import PaytrLogAction, PaytrLogStatus, PaytrMode
from ptcoach.core.exceptions import InvalidRequestError
from ptcoach.core.security import decrypt_data
from ptcoach.db.models import PaytrLog, PaytrSetting, User
from ptcoach.services.paytr_gateway import MASKED_SECRET
from ptcoach.services.paytr_settings import PaytrSettingsService, clamp_log_limit, parse_mode
from tests.utils.helpers import TEST_MERCHANT_KEY, TEST_MERCHANT_SALT, mock_paytr_response


@pytest.mark.parametrize("value, expected", [(None, 20), (0, 20), (1, 5), (50, 50), (500, 100)])
def test_clamp_log_limit(value, expected):
    assert clamp_log_limit(value) == expected


def test_parse_mode():
    assert parse_mode("live") == PaytrMode.LIVE
    assert parse_mode(" LIVE ") == PaytrMode.LIVE
    assert parse_mode("prod") == PaytrMode.TEST
    assert parse_mode(None) == PaytrMode.TEST
    assert parse_mode(PaytrMode.LIVE) == PaytrMode.LIVE


async def test_get_view_without_settings(db_session: AsyncSession):
    assert await PaytrSettingsService(db_session).get_view() == {"setting": None, "logs": []}


async def test_get_view_masks_secrets(db_session: AsyncSession, paytr_setting: PaytrSetting):
    view = await PaytrSettingsService(db_session).get_view()

    assert view["setting"]["merchant_id"] == "123456"
    assert view["setting"]["merchant_key"] == MASKED_SECRET
    assert view["setting"]["merchant_salt"] == MASKED_SECRET
    assert TEST_MERCHANT_KEY not in str(view)


async def test_update_creates_setting(db_session: AsyncSession, admin_user: User):
    data = {
        "mode": "live", "merchant_id": " 999 ", "merchant_key": "new-key", "merchant_salt": "new-salt",
        "max_installment": "30", "currency": "", "payment_methods": {"card": True},
    }

    result = await PaytrSettingsService(db_session).update(data, admin_user, ip_address="10.0.0.5")

    assert result["merchant_id"] == "999"
    assert result["mode"] == PaytrMode.LIVE
    assert result["merchant_key"] == MASKED_SECRET
    assert result["max_installment"] == 12
    assert result["currency"] == "TL"
    assert result["updated_by_email"] == admin_user.email

    stored = (await db_session.execute(select(PaytrSetting))).scalar_one()
    assert decrypt_data(stored.encrypted_merchant_key) == "new-key"
    assert stored.encrypted_merchant_key != "new-key"
    assert stored.payment_methods == {"card": True}

    entry = (await db_session.execute(
        select(PaytrLog).where(PaytrLog.action == PaytrLogAction.SETTINGS_UPDATED.value)
    )).scalar_one()
    assert entry.ip_address == "10.0.0.5"
    assert "new-key" not in str(entry.payload)


async def test_update_keeps_stored_secrets(db_session: AsyncSession, admin_user: User, paytr_setting: PaytrSetting):
    """Маска или пустое значение не перезаписывают сохраненные ключи."""
    await PaytrSettingsService(db_session).update(
        {"merchant_id": "123456", "merchant_key": MASKED_SECRET, "merchant_salt": ""}, admin_user,
    )

    settings_rows = (await db_session.execute(select(PaytrSetting))).scalars().all()
    assert len(settings_rows) == 1
    assert decrypt_data(settings_rows[0].encrypted_merchant_key) == TEST_MERCHANT_KEY
    assert decrypt_data(settings_rows[0].encrypted_merchant_salt) == TEST_MERCHANT_SALT


async def test_update_requires_merchant_id(db_session: AsyncSession, admin_user: User):
    with pytest.raises(InvalidRequestError) as exc_info:
        await PaytrSettingsService(db_session).update({"merchant_id": "  "}, admin_user)
    assert exc_info.value.message == "Mağaza (merchant) ID zorunludur"


async def test_update_requires_secrets_on_first_save(db_session: AsyncSession, admin_user: User):
    with pytest.raises(InvalidRequestError) as exc_info:
        await PaytrSettingsService(db_session).update(
            {"merchant_id": "1", "merchant_key": MASKED_SECRET}, admin_user
        )
    assert exc_info.value.message == "Merchant key ve merchant salt alanları zorunludur"


async def test_run_test_uses_stored_secrets(
    db_session: AsyncSession, admin_user: User, paytr_setting: PaytrSetting, mocker
):
    mock_post = mock_paytr_response(mocker, {"status": "success", "token": "probe"})

    result = await PaytrSettingsService(db_session).run_test({"merchant_key": MASKED_SECRET}, admin_user)

    assert result["ok"] is True
    assert mock_post.call_args.kwargs["data"]["merchant_id"] == "123456"
    await db_session.refresh(paytr_setting)
    assert paytr_setting.last_synced_at is not None

    entry = (await db_session.execute(
        select(PaytrLog).where(PaytrLog.action == PaytrLogAction.SETTINGS_TEST.value)
    )).scalar_one()
    assert entry.status == PaytrLogStatus.SUCCESS.value


async def test_run_test_failure_is_logged(
    db_session: AsyncSession, admin_user: User, paytr_setting: PaytrSetting, mocker
):
    mock_paytr_response(mocker, {"status": "failed", "reason": "Hatalı mağaza"})

    result = await PaytrSettingsService(db_session).run_test({}, admin_user)

    assert result == {"ok": False, "reason": "Hatalı mağaza", "raw": {"status": "failed", "reason": "Hatalı mağaza"}}
    await db_session.refresh(paytr_setting)
    assert paytr_setting.last_synced_at is None
    entry = (await db_session.execute(
        select(PaytrLog).where(PaytrLog.action == PaytrLogAction.SETTINGS_TEST.value)
    )).scalar_one()
    assert entry.status == PaytrLogStatus.ERROR.value
    assert entry.error == {"reason": "Hatalı mağaza"}


async def test_run_test_incomplete_credentials(db_session: AsyncSession, admin_user: User):
    with pytest.raises(InvalidRequestError):
        await PaytrSettingsService(db_session).run_test({"merchant_id": "1"}, admin_user)
