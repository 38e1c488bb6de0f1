from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.errors import register_error_handlers
from app.api.routes import health, investments, products
from app.infrastructure.db.database import Base, get_db, get_session_factory
from app.infrastructure.db.models import (
    CompoundFrequencyEnum,
    InvestmentProductModel,
    InvestmentTypeEnum,
    RiskLevelEnum,
    UserModel,
)


@pytest.fixture()
async def db_engine(tmp_path):
    # File-backed so concurrent sessions get their own connections
    db_path = tmp_path / "test.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        echo=False,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture()
def make_user(session_factory):
    async def _make_user(
        user_id: str = "user-1",
        balance: Decimal = Decimal("50000"),
        is_active: bool = True,
    ) -> str:
        async with session_factory() as session:
            async with session.begin():
                session.add(
                    UserModel(
                        id=user_id,
                        email=f"{user_id}@example.com",
                        first_name="Test",
                        last_name="User",
                        account_balance=Decimal(balance),
                        is_active=is_active,
                    )
                )
        return user_id

    return _make_user


@pytest.fixture()
def make_product(session_factory):
    async def _make_product(
        product_id: str = "bond-12",
        annual_yield: Decimal = Decimal("12.00"),
        tenure_months: int = 24,
        compound_frequency: CompoundFrequencyEnum = CompoundFrequencyEnum.ANNUALLY,
        investment_type: InvestmentTypeEnum = InvestmentTypeEnum.BOND,
        risk_level: RiskLevelEnum = RiskLevelEnum.LOW,
        min_investment: Decimal = Decimal("1000"),
        max_investment: Optional[Decimal] = Decimal("100000"),
        is_active: bool = True,
    ) -> str:
        async with session_factory() as session:
            async with session.begin():
                session.add(
                    InvestmentProductModel(
                        id=product_id,
                        name=f"Product {product_id}",
                        investment_type=investment_type,
                        tenure_months=tenure_months,
                        annual_yield=annual_yield,
                        risk_level=risk_level,
                        min_investment=min_investment,
                        max_investment=max_investment,
                        compound_frequency=compound_frequency,
                        early_withdrawal_penalty=Decimal("1.00"),
                        is_active=is_active,
                    )
                )
        return product_id

    return _make_product


@pytest.fixture()
async def app(session_factory) -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(health.router, tags=["Health"])
    app.include_router(investments.router, prefix="/api/v1/investments", tags=["Investments"])
    app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
