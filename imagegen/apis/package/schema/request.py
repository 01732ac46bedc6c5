from pydantic import BaseModel, Field


class GrantTimesReq(BaseModel):
    """管理员设置赠送次数，0 表示清除赠送"""
    user_id: int = Field(gt=0, description="用户ID", alias="userId")
    times: int = Field(ge=0, description="赠送次数")

    model_config = {"populate_by_name": True}
