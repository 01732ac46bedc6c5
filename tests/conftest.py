from decimal import Decimal

import pytest
from tortoise import Tortoise

from imagegen.common.config import config
from imagegen.common.constants import RoleEnum
from imagegen.common.models import Package, User
from imagegen.core.database import build_tortoise_config


@pytest.fixture(autouse=True)
async def db():
    await Tortoise.init(config=build_tortoise_config(config.database, db_url="sqlite://:memory:"))
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


@pytest.fixture
def make_user():
    counter = {"n": 0}

    async def _make_user(role: RoleEnum = RoleEnum.USER, **kwargs) -> User:
        counter["n"] += 1
        n = counter["n"]
        return await User.create(
            username=kwargs.pop("username", f"user{n}"),
            email=kwargs.pop("email", f"user{n}@example.com"),
            password_hash="hash",
            password_salt="salt",
            role=role,
            **kwargs,
        )

    return _make_user


@pytest.fixture
async def user(make_user) -> User:
    return await make_user()


@pytest.fixture
async def package() -> Package:
    return await Package.create(
        name="标准套餐",
        description="30 次，30 天",
        usage_count=30,
        validity_days=30,
        price=Decimal("10.00"),
    )
