from tortoise import fields, models


class DefaultModel(models.Model):
    id = fields.IntField(pk=True, description="id")
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    # 对外输出时排除的字段，如密码哈希
    sensitive_fields: frozenset = frozenset()

    class Meta:
        abstract = True

    def to_dict(self, exclude_fields=None) -> dict:
        """
        按字段原值导出（Decimal、datetime、Enum 保持原类型），格式化交给 ResponseHelper
        """
        exclude_fields = set(exclude_fields or ()) | self.sensitive_fields
        return {
            name: getattr(self, name)
            for name in self._meta.fields_map
            if name not in exclude_fields
        }

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.id}>"
