"""
Tests for the auction engine.

Tests:
- Bid acceptance and rejection codes
- Anti-snipe extension
- Buy-now
- Expiry transitions and idempotence
- Serialized concurrent bidding
- Cancellation and notifications
- Proxy (auto) bidding
"""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from database.models.auction import AuctionStatus
from database.models.order import Order
from services.auction import load_auction
from services.engine import AuctionEngine
from services.auto_bids import get_auto_bids
from services.ledger import bid_history
from services.results import AuctionNotFound, BidError
from services.rules import as_utc
from services.system import EXTENSION_TRIGGER_KEY, set_value


async def _reload(session_maker, product_id):
    async with session_maker() as session:
        return await load_auction(session, product_id)


async def _order_count(session_maker):
    async with session_maker() as session:
        result = await session.execute(select(func.count(Order.id)))
        return result.scalar()


class TestPlaceBid:
    """Bid acceptance rules"""

    @pytest.mark.asyncio
    async def test_bid_below_step_rejected_and_at_step_accepted(self, engine, factory, session_maker):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller, start_price=100, bid_step=10)

        low = await engine.place_bid(product.id, bidder.id, 105)
        assert not low.ok
        assert low.error == BidError.BID_TOO_LOW
        assert "110" in low.message

        accepted = await engine.place_bid(product.id, bidder.id, 110)
        assert accepted.ok
        assert accepted.bid.amount == 110
        assert accepted.auction.current_price == 110

        auction = await _reload(session_maker, product.id)
        assert auction.current_price == 110
        assert auction.highest_bidder_id == bidder.id

    @pytest.mark.asyncio
    async def test_leading_bidder_cannot_outbid_themselves(self, engine, factory):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller)

        assert (await engine.place_bid(product.id, bidder.id, 110)).ok
        again = await engine.place_bid(product.id, bidder.id, 200)
        assert again.error == BidError.SELF_BID

    @pytest.mark.asyncio
    async def test_seller_cannot_bid_on_own_product(self, engine, factory):
        seller = await factory.user()
        product, _ = await factory.lot(seller)

        result = await engine.place_bid(product.id, seller.id, 500)
        assert result.error == BidError.OWN_PRODUCT

    @pytest.mark.asyncio
    async def test_bid_after_end_time_rejected(self, engine, factory, clock):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller, duration_hours=1)

        clock.advance(hours=1)
        result = await engine.place_bid(product.id, bidder.id, 110)
        assert result.error == BidError.AUCTION_NOT_ACTIVE

    @pytest.mark.asyncio
    async def test_low_rating_blocks_bid(self, engine, factory):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller)
        await factory.rating(bidder, 1)
        await factory.rating(bidder, -1)

        result = await engine.place_bid(product.id, bidder.id, 110)
        assert result.error == BidError.INSUFFICIENT_RATING
        assert "50%" in result.message

    @pytest.mark.asyncio
    async def test_rating_at_threshold_allowed(self, engine, factory):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller)
        for score in (1, 1, 1, 1, -1):
            await factory.rating(bidder, score)

        assert (await engine.place_bid(product.id, bidder.id, 110)).ok

    @pytest.mark.asyncio
    async def test_new_bidder_rejected_when_seller_disallows(self, engine, factory):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller, allow_new_bidders=False)

        result = await engine.place_bid(product.id, bidder.id, 110)
        assert result.error == BidError.INSUFFICIENT_RATING

    @pytest.mark.asyncio
    async def test_unknown_product_raises(self, engine):
        with pytest.raises(AuctionNotFound):
            await engine.place_bid(404, 1, 100)

    @pytest.mark.asyncio
    async def test_rejected_bid_leaves_ledger_untouched(self, engine, factory, session_maker):
        seller, bidder = await factory.user(), await factory.user()
        product, auction = await factory.lot(seller)

        await engine.place_bid(product.id, bidder.id, 50)
        async with session_maker() as session:
            assert await bid_history(session, auction.id) == []


class TestAntiSnipe:
    """Extension of the end time for late bids"""

    @pytest.mark.asyncio
    async def test_late_bid_extends_end_time(self, engine, factory, clock):
        seller, bidder = await factory.user(), await factory.user()
        product, auction = await factory.lot(seller, duration_hours=1)
        original_end = as_utc(auction.ends_at)

        clock.advance(minutes=57)
        result = await engine.place_bid(product.id, bidder.id, 110)

        assert result.ok
        assert as_utc(result.auction.ends_at) == original_end + timedelta(minutes=10)

    @pytest.mark.asyncio
    async def test_early_bid_does_not_extend(self, engine, factory, clock):
        seller, bidder = await factory.user(), await factory.user()
        product, auction = await factory.lot(seller, duration_hours=1)

        clock.advance(minutes=30)
        result = await engine.place_bid(product.id, bidder.id, 110)
        assert as_utc(result.auction.ends_at) == as_utc(auction.ends_at)

    @pytest.mark.asyncio
    async def test_extension_disabled_per_auction(self, engine, factory, clock):
        seller, bidder = await factory.user(), await factory.user()
        product, auction = await factory.lot(seller, duration_hours=1, auto_extend=False)

        clock.advance(minutes=58)
        result = await engine.place_bid(product.id, bidder.id, 110)
        assert as_utc(result.auction.ends_at) == as_utc(auction.ends_at)

    @pytest.mark.asyncio
    async def test_each_late_bid_extends_once(self, engine, factory, clock):
        seller, first, second = await factory.user(), await factory.user(), await factory.user()
        product, auction = await factory.lot(seller, duration_hours=1)
        end = as_utc(auction.ends_at)

        clock.advance(minutes=57)
        await engine.place_bid(product.id, first.id, 110)
        # 13 minutes left after extension: outside the trigger window
        result = await engine.place_bid(product.id, second.id, 120)
        assert as_utc(result.auction.ends_at) == end + timedelta(minutes=10)

    @pytest.mark.asyncio
    async def test_trigger_from_system_config(self, engine, factory, clock, session_maker):
        seller, bidder = await factory.user(), await factory.user()
        product, auction = await factory.lot(seller, duration_hours=1)
        async with session_maker() as session:
            await set_value(session, EXTENSION_TRIGGER_KEY, "30")

        clock.advance(minutes=40)
        result = await engine.place_bid(product.id, bidder.id, 110)
        assert as_utc(result.auction.ends_at) == as_utc(auction.ends_at) + timedelta(minutes=10)


class TestBuyNow:
    """Immediate purchase"""

    @pytest.mark.asyncio
    async def test_buy_now_sells_and_blocks_bids(self, engine, factory, session_maker):
        seller, buyer, bidder = await factory.user(), await factory.user(), await factory.user()
        product, _ = await factory.lot(seller, buy_now_price=500)

        result = await engine.buy_now(product.id, buyer.id)
        assert result.ok
        assert result.auction.status == AuctionStatus.SOLD.value
        assert result.auction.current_price == 500
        assert result.auction.highest_bidder_id == buyer.id
        assert result.order.buyer_id == buyer.id
        assert result.order.seller_id == seller.id
        assert result.order.final_price == 500

        late = await engine.place_bid(product.id, bidder.id, 600)
        assert late.error == BidError.AUCTION_NOT_ACTIVE

        auction = await _reload(session_maker, product.id)
        assert auction.status == AuctionStatus.SOLD.value

    @pytest.mark.asyncio
    async def test_buy_now_without_price_unavailable(self, engine, factory):
        seller, buyer = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller)

        result = await engine.buy_now(product.id, buyer.id)
        assert result.error == BidError.BUY_NOW_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_buy_now_twice_unavailable(self, engine, factory, session_maker):
        seller, buyer, other = await factory.user(), await factory.user(), await factory.user()
        product, _ = await factory.lot(seller, buy_now_price=500)

        assert (await engine.buy_now(product.id, buyer.id)).ok
        assert (await engine.buy_now(product.id, other.id)).error == BidError.BUY_NOW_UNAVAILABLE
        assert await _order_count(session_maker) == 1

    @pytest.mark.asyncio
    async def test_buy_now_below_current_price_unavailable(self, engine, factory):
        seller, bidder, buyer = await factory.user(), await factory.user(), await factory.user()
        product, _ = await factory.lot(seller, buy_now_price=150)

        assert (await engine.place_bid(product.id, bidder.id, 200)).ok
        assert (await engine.buy_now(product.id, buyer.id)).error == BidError.BUY_NOW_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_seller_cannot_buy_own_product(self, engine, factory):
        seller = await factory.user()
        product, _ = await factory.lot(seller, buy_now_price=500)

        assert (await engine.buy_now(product.id, seller.id)).error == BidError.OWN_PRODUCT


class TestExpiry:
    """Clock-driven transitions"""

    @pytest.mark.asyncio
    async def test_expiry_without_bids_ends(self, engine, factory, clock, notifier):
        seller = await factory.user()
        product, _ = await factory.lot(seller, duration_hours=1)

        clock.advance(hours=1)
        auction = await engine.expire_auction(product.id)
        assert auction.status == AuctionStatus.ENDED.value
        assert ("auction_ended", product.id) in notifier.events

    @pytest.mark.asyncio
    async def test_expiry_with_winner_sells(self, engine, factory, clock, session_maker):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller, duration_hours=1)
        await engine.place_bid(product.id, bidder.id, 110)

        clock.advance(hours=2)
        auction = await engine.expire_auction(product.id)
        assert auction.status == AuctionStatus.SOLD.value
        assert auction.highest_bidder_id == bidder.id
        assert await _order_count(session_maker) == 1

    @pytest.mark.asyncio
    async def test_expiry_before_end_is_noop(self, engine, factory):
        seller = await factory.user()
        product, _ = await factory.lot(seller)

        auction = await engine.expire_auction(product.id)
        assert auction.status == AuctionStatus.ACTIVE.value

    @pytest.mark.asyncio
    async def test_expiry_is_idempotent(self, engine, factory, clock, session_maker, notifier):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller, duration_hours=1)
        await engine.place_bid(product.id, bidder.id, 110)

        clock.advance(hours=1)
        first = await engine.expire_auction(product.id)
        clock.advance(minutes=5)
        second = await engine.expire_auction(product.id)

        assert first.status == second.status == AuctionStatus.SOLD.value
        assert as_utc(second.finished_at) == as_utc(first.finished_at)
        assert await _order_count(session_maker) == 1
        assert len([e for e in notifier.events if e[0] == "auction_sold"]) == 1

    @pytest.mark.asyncio
    async def test_expire_due_auctions_only_touches_expired(self, engine, factory, clock, session_maker):
        seller = await factory.user()
        short, _ = await factory.lot(seller, duration_hours=1)
        long, _ = await factory.lot(seller, duration_hours=3)

        clock.advance(hours=2)
        finished = await engine.expire_due_auctions()

        assert [a.product_id for a in finished] == [short.id]
        assert (await _reload(session_maker, long.id)).status == AuctionStatus.ACTIVE.value


class TestConcurrency:
    """Per-product serialization"""

    @pytest.mark.asyncio
    async def test_same_price_race_accepts_one(self, engine, factory, session_maker):
        seller = await factory.user()
        bidders = [await factory.user() for _ in range(5)]
        product, auction = await factory.lot(seller, start_price=100, bid_step=10)

        results = await asyncio.gather(*(engine.place_bid(product.id, b.id, 110) for b in bidders))

        assert len([r for r in results if r.ok]) == 1
        assert all(r.error == BidError.BID_TOO_LOW for r in results if not r.ok)
        async with session_maker() as session:
            assert len(await bid_history(session, auction.id)) == 1

    @pytest.mark.asyncio
    async def test_accepted_bids_respect_step(self, engine, factory, session_maker):
        seller = await factory.user()
        bidders = [await factory.user() for _ in range(6)]
        product, auction = await factory.lot(seller, start_price=100, bid_step=10)
        amounts = [110, 150, 120, 160, 130, 170]

        await asyncio.gather(*(engine.place_bid(product.id, b.id, a) for b, a in zip(bidders, amounts)))

        async with session_maker() as session:
            history = await bid_history(session, auction.id)
        price = 100
        for bid in history:
            assert bid.amount >= price + 10
            price = bid.amount
        assert (await _reload(session_maker, product.id)).current_price == price == 170

    @pytest.mark.asyncio
    async def test_bid_racing_expiry(self, engine, factory, clock):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller, duration_hours=1)

        clock.advance(hours=1)
        bid, expired = await asyncio.gather(
            engine.place_bid(product.id, bidder.id, 110),
            engine.expire_auction(product.id),
        )
        assert bid.error == BidError.AUCTION_NOT_ACTIVE
        assert expired.status == AuctionStatus.ENDED.value


class TestCancel:
    """Seller cancellation"""

    @pytest.mark.asyncio
    async def test_seller_cancels_auction_without_bids(self, engine, factory):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller)

        result = await engine.cancel_auction(product.id, seller.id)
        assert result.ok
        assert result.auction.status == AuctionStatus.CANCELLED.value
        assert (await engine.place_bid(product.id, bidder.id, 110)).error == BidError.AUCTION_NOT_ACTIVE

    @pytest.mark.asyncio
    async def test_cancel_rules(self, engine, factory):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller)

        assert (await engine.cancel_auction(product.id, bidder.id)).error == BidError.NOT_SELLER
        await engine.place_bid(product.id, bidder.id, 110)
        assert (await engine.cancel_auction(product.id, seller.id)).error == BidError.HAS_BIDS


class TestNotifications:
    """Events handed to the notifier"""

    @pytest.mark.asyncio
    async def test_outbid_event_carries_previous_bidder(self, engine, factory, notifier):
        seller, first, second = await factory.user(), await factory.user(), await factory.user()
        product, _ = await factory.lot(seller)

        await engine.place_bid(product.id, first.id, 110)
        await engine.place_bid(product.id, second.id, 120)

        assert notifier.events == [
            ("bid_placed", product.id, first.id, 110, None),
            ("bid_placed", product.id, second.id, 120, first.id),
        ]

    @pytest.mark.asyncio
    async def test_failing_notifier_does_not_undo_bid(self, session_maker, factory, clock):
        class Broken:
            async def bid_placed(self, *args):
                raise RuntimeError("telegram down")

        engine = AuctionEngine(session_maker, notifier=Broken(), clock=clock)
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller)

        assert (await engine.place_bid(product.id, bidder.id, 110)).ok
        assert (await _reload(session_maker, product.id)).current_price == 110


class TestAutoBid:
    """Proxy bidding resolved inside the bid transaction"""

    async def _amounts(self, session_maker, auction_id):
        async with session_maker() as session:
            return [(b.bidder_id, b.amount) for b in await bid_history(session, auction_id)]

    @pytest.mark.asyncio
    async def test_two_proxies_settle_above_second_limit(self, engine, factory, session_maker):
        seller, alice, bob = await factory.user(), await factory.user(), await factory.user()
        product, auction = await factory.lot(seller, start_price=100, bid_step=10)

        first = await engine.set_auto_bid(product.id, alice.id, 150)
        assert first.ok
        assert [(b.bidder_id, b.amount) for b in first.proxy_bids] == [(alice.id, 110)]

        second = await engine.set_auto_bid(product.id, bob.id, 200)
        assert second.ok
        assert second.auction.current_price == 160
        assert second.auction.highest_bidder_id == bob.id
        assert await self._amounts(session_maker, auction.id) == [(alice.id, 110), (bob.id, 160)]

    @pytest.mark.asyncio
    async def test_weaker_proxy_set_later_is_answered(self, engine, factory, session_maker):
        seller, alice, bob = await factory.user(), await factory.user(), await factory.user()
        product, auction = await factory.lot(seller, start_price=100, bid_step=10)

        await engine.set_auto_bid(product.id, bob.id, 200)
        result = await engine.set_auto_bid(product.id, alice.id, 150)

        assert result.auction.current_price == 160
        assert result.auction.highest_bidder_id == bob.id
        assert await self._amounts(session_maker, auction.id) == [
            (bob.id, 110), (alice.id, 150), (bob.id, 160)
        ]

    @pytest.mark.asyncio
    async def test_manual_bid_against_proxy(self, engine, factory, session_maker):
        seller, bob, carol = await factory.user(), await factory.user(), await factory.user()
        product, auction = await factory.lot(seller, start_price=100, bid_step=10)
        await engine.set_auto_bid(product.id, bob.id, 200)

        outbid = await engine.place_bid(product.id, carol.id, 150)
        assert outbid.ok
        assert outbid.bid.amount == 150
        assert [(b.bidder_id, b.amount) for b in outbid.proxy_bids] == [(bob.id, 160)]
        assert outbid.auction.highest_bidder_id == bob.id

        winning = await engine.place_bid(product.id, carol.id, 250)
        assert winning.ok
        assert winning.proxy_bids == []

        reloaded = await _reload(session_maker, product.id)
        assert reloaded.current_price == 250
        assert reloaded.highest_bidder_id == carol.id
        assert await self._amounts(session_maker, auction.id) == [
            (bob.id, 110), (carol.id, 150), (bob.id, 160), (carol.id, 250)
        ]

    @pytest.mark.asyncio
    async def test_limit_below_minimum_bid_rejected(self, engine, factory, session_maker):
        seller, bob = await factory.user(), await factory.user()
        product, auction = await factory.lot(seller, start_price=100, bid_step=10)

        result = await engine.set_auto_bid(product.id, bob.id, 105)
        assert result.error == BidError.BID_TOO_LOW
        async with session_maker() as session:
            assert await get_auto_bids(session, auction.id) == []
            assert await bid_history(session, auction.id) == []

    @pytest.mark.asyncio
    async def test_overtaken_proxy_stays_idle(self, engine, factory, session_maker):
        seller, bob, carol = await factory.user(), await factory.user(), await factory.user()
        product, _ = await factory.lot(seller, start_price=100, bid_step=10)
        await engine.set_auto_bid(product.id, bob.id, 150)

        result = await engine.place_bid(product.id, carol.id, 145)
        assert result.proxy_bids == []
        assert result.auction.highest_bidder_id == carol.id
        assert result.auction.current_price == 145

    @pytest.mark.asyncio
    async def test_equal_limits_keep_earlier_leader(self, engine, factory):
        seller, alice, bob = await factory.user(), await factory.user(), await factory.user()
        product, _ = await factory.lot(seller, start_price=100, bid_step=10)

        await engine.set_auto_bid(product.id, alice.id, 150)
        result = await engine.set_auto_bid(product.id, bob.id, 150)

        assert result.ok
        assert result.proxy_bids == []
        assert result.auction.highest_bidder_id == alice.id

    @pytest.mark.asyncio
    async def test_leader_raises_limit_without_bidding(self, engine, factory, session_maker):
        seller, alice = await factory.user(), await factory.user()
        product, auction = await factory.lot(seller)
        await engine.set_auto_bid(product.id, alice.id, 150)

        result = await engine.set_auto_bid(product.id, alice.id, 300)
        assert result.ok
        assert result.proxy_bids == []
        async with session_maker() as session:
            limits = await get_auto_bids(session, auction.id)
        assert [(p.user_id, p.max_amount) for p in limits] == [(alice.id, 300)]

    @pytest.mark.asyncio
    async def test_low_rated_user_cannot_set_limit(self, engine, factory):
        seller, bidder = await factory.user(), await factory.user()
        product, _ = await factory.lot(seller)
        await factory.rating(bidder, -1)

        result = await engine.set_auto_bid(product.id, bidder.id, 500)
        assert result.error == BidError.INSUFFICIENT_RATING

    @pytest.mark.asyncio
    async def test_proxy_bid_notifies_outbid_bidder(self, engine, factory, notifier):
        seller, bob, carol = await factory.user(), await factory.user(), await factory.user()
        product, _ = await factory.lot(seller)
        await engine.set_auto_bid(product.id, bob.id, 200)
        notifier.events.clear()

        await engine.place_bid(product.id, carol.id, 150)
        assert notifier.events == [
            ("bid_placed", product.id, carol.id, 150, bob.id),
            ("bid_placed", product.id, bob.id, 160, carol.id),
        ]

    @pytest.mark.asyncio
    async def test_late_proxy_exchange_extends_once(self, engine, factory, clock):
        seller, bob, carol = await factory.user(), await factory.user(), await factory.user()
        product, auction = await factory.lot(seller, duration_hours=1)
        await engine.set_auto_bid(product.id, bob.id, 200)

        clock.advance(minutes=57)
        result = await engine.place_bid(product.id, carol.id, 150)
        assert as_utc(result.auction.ends_at) == as_utc(auction.ends_at) + timedelta(minutes=10)
