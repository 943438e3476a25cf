"""
Pytest configuration for auction tests.

Every test gets its own in-memory SQLite database (aiosqlite), a controllable
clock and a notifier that records events instead of sending them.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from database.connection import Base
import database.models  # noqa: F401
from database.models.order import Order
from database.models.user import User
from services.auction import create_auction, create_product
from services.engine import AuctionEngine
from services.ratings import create_rating

START = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to"""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    """Collects engine events"""

    def __init__(self):
        self.events = []

    async def bid_placed(self, auction, bid, previous_bidder_id):
        self.events.append(("bid_placed", auction.product_id, bid.bidder_id, bid.amount, previous_bidder_id))

    async def auction_sold(self, auction, order):
        self.events.append(("auction_sold", auction.product_id, order.buyer_id, order.final_price))

    async def auction_ended(self, auction):
        self.events.append(("auction_ended", auction.product_id))


class Factory:
    """Creates users, lots, orders and ratings"""

    def __init__(self, session_maker, clock):
        self.session_maker = session_maker
        self.clock = clock
        self._telegram_id = 1000

    async def user(self, username: str = None) -> User:
        self._telegram_id += 1
        async with self.session_maker() as session:
            user = User(telegram_id=self._telegram_id, username=username or f"user{self._telegram_id}")
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    async def lot(
        self,
        seller: User,
        start_price: int = 100,
        bid_step: int = 10,
        buy_now_price: int = None,
        duration_hours: float = 2,
        **kwargs
    ):
        async with self.session_maker() as session:
            product = await create_product(session, seller.id, "Букет роз")
            auction = await create_auction(
                session,
                product.id,
                start_price,
                bid_step,
                buy_now_price,
                duration_hours=duration_hours,
                now=self.clock(),
                **kwargs
            )
            return product, auction

    async def rating(self, receiver: User, score: int, comment: str = None):
        """Give receiver one rating from a fresh counterparty"""
        other = await self.user()
        product, _ = await self.lot(other)
        async with self.session_maker() as session:
            order = Order(product_id=product.id, buyer_id=receiver.id, seller_id=other.id, final_price=100)
            session.add(order)
            await session.commit()
            await session.refresh(order)
            return await create_rating(session, order.id, other.id, score, comment)


@pytest_asyncio.fixture
async def session_maker():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(session_maker, clock, notifier):
    return AuctionEngine(session_maker, notifier=notifier, clock=clock)


@pytest.fixture
def factory(session_maker, clock):
    return Factory(session_maker, clock)
