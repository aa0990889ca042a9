# tests/tasks/test_subscription_jobs.py
from datetime import datetime, timedelta, UTC
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.core.enums import PackageStatus
from ptcoach.db.models import AdminLog, Package, User
from ptcoach.services.subscription_ledger import SubscriptionLedger
from ptcoach.tasks.cron_jobs import expire_elapsed_purchases_job
from ptcoach.tasks.logic.subscription_jobs import (
    _expire_elapsed_purchases_async, _send_weekly_checkin_emails_async,
)
from ptcoach.worker import WorkerSettings


async def test_expire_job_only_touches_elapsed(
    db_session: AsyncSession, test_user: User, create_user, premium_package: Package
):
    """Задача переводит в EXPIRED только покупки с истекшим сроком."""
    # Arrange
    other = await create_user("fresh@example.com")
    ledger = SubscriptionLedger(db_session)
    elapsed = await ledger.create_purchase(test_user.id, premium_package, now=datetime(2024, 1, 1, tzinfo=UTC))
    running = await ledger.create_purchase(other.id, premium_package, now=datetime(2024, 1, 25, tzinfo=UTC))

    # Act
    count = await _expire_elapsed_purchases_async(session=db_session, now=datetime(2024, 2, 1, tzinfo=UTC))

    # Assert
    assert count == 1
    await db_session.refresh(elapsed)
    await db_session.refresh(running)
    assert elapsed.status == PackageStatus.EXPIRED
    assert running.status == PackageStatus.ACTIVE

    # Повторный запуск ничего не меняет
    assert await _expire_elapsed_purchases_async(session=db_session, now=datetime(2024, 2, 1, tzinfo=UTC)) == 0


async def test_expire_job_does_not_change_access_answer(
    db_session: AsyncSession, test_user: User, premium_package: Package
):
    ledger = SubscriptionLedger(db_session)
    start = datetime(2024, 1, 1, tzinfo=UTC)
    await ledger.create_purchase(test_user.id, premium_package, now=start)
    check_at = start + timedelta(days=31)

    before = await ledger.get_active_purchase(test_user.id, now=check_at)
    await _expire_elapsed_purchases_async(session=db_session, now=check_at)
    after = await ledger.get_active_purchase(test_user.id, now=check_at)

    assert before is None and after is None


async def test_expire_job_wrapper_uses_own_session(mocker):
    mock_session = mocker.AsyncMock()
    factory = mocker.patch("ptcoach.tasks.cron_jobs.AsyncSessionFactory")
    factory.return_value.__aenter__.return_value = mock_session
    mock_logic = mocker.patch("ptcoach.tasks.cron_jobs._expire_elapsed_purchases_async", return_value=0)

    await expire_elapsed_purchases_job({})

    mock_logic.assert_awaited_once_with(session=mock_session)


async def test_weekly_checkin_without_mail_config(
    db_session: AsyncSession, test_user: User, premium_package: Package
):
    await SubscriptionLedger(db_session).create_purchase(test_user.id, premium_package)

    assert await _send_weekly_checkin_emails_async(session=db_session) == 0


async def test_weekly_checkin_one_mail_per_user(
    db_session: AsyncSession, test_user: User, trainer_user: User, create_user, premium_package: Package, mocker
):
    """Письмо уходит активным пользователям с действующим или назначенным на будущее пакетом, по одному на пользователя."""
    # Arrange
    inactive = await create_user("pasif@example.com", is_active=False)
    without_package = await create_user("paketsiz@example.com")
    ledger = SubscriptionLedger(db_session)
    await ledger.create_purchase(test_user.id, premium_package)
    await ledger.create_purchase(inactive.id, premium_package)
    future_client = await create_user("gelecek@example.com")
    await ledger.assign_manual(
        trainer_user, future_client.id, premium_package.id,
        start_date=(datetime.now(UTC) + timedelta(days=5)).isoformat(),
    )

    mocker.patch("ptcoach.services.mail.settings.RESEND_API_KEY", "re_test")
    mock_send = mocker.patch("ptcoach.services.mail.resend.Emails.send", return_value={"id": "msg"})

    # Act
    sent = await _send_weekly_checkin_emails_async(session=db_session)

    # Assert
    assert sent == 2
    recipients = [call.args[0]["to"] for call in mock_send.call_args_list]
    assert recipients == [[test_user.email], [future_client.email]]
    assert without_package.email not in str(recipients)
    entries = (await db_session.execute(select(AdminLog).where(AdminLog.source == "cron"))).scalars().all()
    assert [entry.message for entry in entries] == ["Haftalık kontrol bildirimi gönderildi"] * 2


async def test_weekly_checkin_no_recipients(db_session: AsyncSession):
    assert await _send_weekly_checkin_emails_async(session=db_session) == 0


def test_worker_schedules_both_jobs():
    names = {job.name for job in WorkerSettings.cron_jobs}
    assert names == {"cron:expire_elapsed_purchases_job", "cron:send_weekly_checkin_emails_job"}


def test_worker_uses_configured_timezone():
    assert WorkerSettings.timezone == ZoneInfo("Europe/Istanbul")
