import logging
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from .models import ordered_pair
from .models.chats import Chat
from .metrics import CHATS_CREATED

logger = logging.getLogger(__name__)

_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


class ChatProvisioner:
    """Find-or-create for the direct chat of a pair of users.

    The insert relies on the unique (user_low, user_high) constraint with
    ON CONFLICT DO NOTHING, so racing callers can't create a second chat
    and all of them read back the same row.
    """

    async def ensure(self, session: AsyncSession, user_a: int, user_b: int) -> Chat:
        low, high = ordered_pair(user_a, user_b)
        insert = _INSERTS.get(session.get_bind().dialect.name)
        if insert is None:
            raise RuntimeError(f'unsupported database dialect: {session.get_bind().dialect.name}')

        stmt = (
            insert(Chat)
            .values(user_low=low, user_high=high, is_group=False)
            .on_conflict_do_nothing(index_elements=['user_low', 'user_high'])
        )
        res = await session.execute(stmt)
        if res.rowcount:
            CHATS_CREATED.inc()
            logger.info({'msg': 'chat_created', 'users': [low, high]})

        q = await session.execute(
            select(Chat).where(Chat.user_low == low, Chat.user_high == high, Chat.is_group.is_(False))
        )
        return q.scalars().one()
