"""Блокировки аукционов по ID товара"""
import asyncio
import weakref


class AuctionLocks:
    """Реестр asyncio.Lock: одна блокировка на товар.

    Блокировка живет, пока на нее кто-то ссылается (ждет или держит).
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def for_product(self, product_id: int) -> asyncio.Lock:
        lock = self._locks.get(product_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[product_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
