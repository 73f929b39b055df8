from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from typing import Optional, List

from .errors import DuplicateCode
from .models import Link, utcnow


class LinkStore:
    """Row-level access to the ``links`` table.

    Every method touches a single row and commits on its own; callers never
    need a transaction spanning two calls.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists(self, code: str) -> bool:
        result = await self.db.execute(select(Link.id).where(Link.code == code).limit(1))
        return result.scalar_one_or_none() is not None

    async def insert(self, code: str, target_url: str) -> Link:
        link = Link(code=code, target_url=target_url, total_clicks=0)
        self.db.add(link)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateCode(code)
        await self.db.refresh(link)
        return link

    async def select_by_code(self, code: str) -> Optional[Link]:
        result = await self.db.execute(select(Link).where(Link.code == code))
        return result.scalar_one_or_none()

    async def select_all(self) -> List[Link]:
        result = await self.db.execute(select(Link).order_by(Link.created_at.desc()))
        return list(result.scalars().all())

    async def delete_by_code(self, code: str) -> int:
        result = await self.db.execute(
            delete(Link)
            .where(Link.code == code)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    async def increment_clicks(self, code: str) -> int:
        # Single UPDATE expression so concurrent redirects never lose a click
        result = await self.db.execute(
            update(Link)
            .where(Link.code == code)
            .values(total_clicks=Link.total_clicks + 1, last_clicked=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount
