# backend/ptcoach/repositories/user.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ptcoach.db.models import User, TrainerClient
from ptcoach.repositories.base import BaseRepository


class UserRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def get_by_email(self, email: str) -> User | None:
        query = select(User).where(User.email == email.strip().lower())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_verification_token(self, token: str) -> User | None:
        query = select(User).where(
            User.email_verification_token == token,
            User.email_verified.is_(False)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def lock(self, user_id: int) -> int | None:
        """
        Блокирует строку пользователя до конца транзакции (SELECT ... FOR UPDATE).
        Все изменения подписок одного пользователя проходят через эту блокировку.
        """
        query = select(User.id).where(User.id == user_id).with_for_update()
        return (await self.session.execute(query)).scalar_one_or_none()

    async def get_trainer_relation(self, trainer_id: int, client_id: int) -> TrainerClient | None:
        query = select(TrainerClient).where(
            TrainerClient.trainer_id == trainer_id,
            TrainerClient.client_id == client_id
        )
        return (await self.session.execute(query)).scalar_one_or_none()

    async def ensure_trainer_relation(self, trainer_id: int, client_id: int) -> TrainerClient:
        """Создает связь тренер-клиент или реактивирует существующую."""
        relation = await self.get_trainer_relation(trainer_id, client_id)
        if relation:
            if not relation.is_active:
                relation.is_active = True
            return relation
        relation = TrainerClient(trainer_id=trainer_id, client_id=client_id, is_active=True)
        self.session.add(relation)
        await self.session.flush()
        return relation
