from abc import ABC
from typing import Any, Dict, Generic, List, Optional, TypeVar

from tortoise.queryset import QuerySet

from imagegen.common.exception.exception import NotFoundException
from imagegen.common.utils import DateUtils
from .base_model import DefaultModel

T = TypeVar("T", bound=DefaultModel)


class BaseService(ABC, Generic[T]):
    """
    单表业务 Service 基类
    子类继承 BaseService[Model] 即可获得按主键/条件查询、条件更新和状态迁移等操作
    """
    model_class: type[T]
    not_found_message: str = "数据不存在"

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)

        # BaseService[User] -> User
        model = None
        for base in getattr(cls, "__orig_bases__", []):
            args = getattr(base, "__args__", None)
            if args:
                model = args[0]
                break

        if model is None:
            raise TypeError("无法获取泛型类型，子类必须继承 BaseService[Model]")
        if not issubclass(model, DefaultModel):
            raise TypeError("泛型类型必须是 DefaultModel 子类")

        cls.model_class = model

    def query(self, **filters) -> QuerySet[T]:
        return self.model_class.filter(**filters)

    async def get_by_id(self, id: int) -> Optional[T]:
        return await self.query(id=id).first()

    async def get_or_raise(self, id: int) -> T:
        obj = await self.get_by_id(id)
        if obj is None:
            raise NotFoundException(self.not_found_message)
        return obj

    async def get_one(self, **filters) -> Optional[T]:
        return await self.query(**filters).first()

    async def list(
            self,
            filters: Optional[Dict[str, Any]] = None,
            order_by: Optional[List[str]] = None
    ) -> List[T]:
        query = self.query(**(filters or {}))
        if order_by:
            query = query.order_by(*order_by)
        return await query

    async def update(self, filters: Dict[str, Any], data: Dict[str, Any]) -> int:
        """
        条件更新，返回受影响的行数
        QuerySet.update 不会触发 auto_now，这里统一补上 updated_at
        """
        data.setdefault("updated_at", DateUtils.now())
        return await self.query(**filters).update(**data)

    async def transition(self, id: int, from_status, **data) -> bool:
        """
        状态迁移：只有当前状态仍为 from_status 时才更新
        并发调用中只有一个会返回 True
        """
        return await self.update({"id": id, "status": from_status}, data) > 0

    async def delete(self, **filters) -> int:
        return await self.query(**filters).delete()
