"""Repository base class.

All reads go through ``select()``, so a subclass that narrows it (as
``TenantRepository`` does with the owning patissier) narrows every query,
count and listing at once.

Usage:
    class UserRepository(BaseRepository[User, UUID]):
        resource_name = "user"

    user = await UserRepository(db).get_or_raise(user_id)
"""

from typing import Any, ClassVar, Generic, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.core.exceptions import ResourceNotFoundError
from patissio.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
PKType = TypeVar("PKType", bound=UUID | int | str)


def _model_from_generic(cls: type) -> type[Base] | None:
    """Find the concrete model in ``class FooRepository(BaseRepository[Foo, UUID])``."""
    for base in getattr(cls, "__orig_bases__", ()):
        for arg in getattr(base, "__args__", ())[:1]:
            if isinstance(arg, type) and issubclass(arg, Base):
                return arg
    return None


class BaseRepository(Generic[ModelType, PKType]):
    """Data access for one model.

    Attributes:
        model: Set from the generic parameter of the subclass
        resource_name: Used in not-found errors
        immutable_fields: Attributes ``update`` never writes
    """

    model: type[ModelType]
    resource_name: str = "resource"
    immutable_fields: ClassVar[frozenset[str]] = frozenset({"id", "created_at"})

    def __init__(self, db: AsyncSession):
        self.db = db

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        model = _model_from_generic(cls)
        if model is not None:
            cls.model = model

    def select(self, *criteria: Any) -> Select:
        return select(self.model).where(*criteria)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, pk: PKType) -> ModelType | None:
        return await self.find_one(self.model.id == pk)

    async def get_or_raise(self, pk: PKType) -> ModelType:
        """Raises ResourceNotFoundError when nothing has this id."""
        obj = await self.get(pk)
        if obj is None:
            raise ResourceNotFoundError(self.resource_name, str(pk))
        return obj

    async def find_one(self, *criteria: Any) -> ModelType | None:
        result = await self.db.execute(self.select(*criteria).limit(1))
        return result.scalar_one_or_none()

    async def list(
        self,
        *criteria: Any,
        order_by: Any = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ModelType]:
        """Rows matching ``criteria``.

        Args:
            order_by: One ordering expression or a tuple of them
            limit: Row cap, or None for every match
            offset: Rows to skip
        """
        stmt = self.select(*criteria)
        if order_by is not None:
            orderings = order_by if isinstance(order_by, tuple) else (order_by,)
            stmt = stmt.order_by(*orderings)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(self.select(*criteria).subquery())
        return (await self.db.execute(stmt)).scalar() or 0

    # =========================================================================
    # Writes
    # =========================================================================

    async def create(self, obj: ModelType, *, commit: bool = True) -> ModelType:
        self.db.add(obj)
        await self._save(obj, commit)
        return obj

    async def update(
        self, obj: ModelType, updates: dict[str, Any], *, commit: bool = True
    ) -> ModelType:
        """Copy ``updates`` onto ``obj``.

        Unknown keys and ``immutable_fields`` are skipped silently so a
        request body can be passed through after ``model_dump``.
        """
        self._check_owned(obj)
        for field, value in updates.items():
            if field not in self.immutable_fields and hasattr(obj, field):
                setattr(obj, field, value)
        await self._save(obj, commit)
        return obj

    async def delete(self, obj: ModelType, *, commit: bool = True) -> None:
        self._check_owned(obj)
        await self.db.delete(obj)
        if commit:
            await self.db.commit()
        else:
            await self.db.flush()

    async def _save(self, obj: ModelType, commit: bool) -> None:
        if commit:
            await self.db.commit()
            await self.db.refresh(obj)
        else:
            await self.db.flush()

    def _check_owned(self, obj: ModelType) -> None:
        """Hook for subclasses that refuse to write rows outside their scope."""
