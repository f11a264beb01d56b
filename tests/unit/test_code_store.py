"""
Unit tests for CodeStore

Tests deduplication, newest-first ordering and capacity eviction.
"""

import threading

import pytest

from mailcode.core.code_store import CodeStore
from mailcode.models.verification_code import VerificationCode


def make_code(code: str, timestamp: int = 1_700_000_000_000) -> VerificationCode:
    return VerificationCode(
        code=code,
        timestamp=timestamp,
        sender="no-reply@login.awsapps.com",
        subject="Your verification code",
    )


@pytest.fixture
def store():
    """Create an empty CodeStore"""
    return CodeStore()


class TestCodeStoreInit:
    """Test CodeStore initialization"""

    def test_init_empty(self, store):
        """Store starts empty with capacity 10"""
        assert len(store) == 0
        assert store.snapshot() == []
        assert store.capacity == 10

    def test_init_creates_lock(self, store):
        """Store guards its deque with a threading lock"""
        assert isinstance(store._lock, type(threading.Lock()))

    def test_rejects_zero_capacity(self):
        """Capacity must be positive"""
        with pytest.raises(ValueError):
            CodeStore(capacity=0)


class TestAdd:
    """Test add method"""

    def test_newest_first(self, store):
        """Later inserts go to the front"""
        store.add(make_code("111111"))
        store.add(make_code("222222"))

        assert [c.code for c in store.snapshot()] == ["222222", "111111"]

    def test_duplicate_is_noop(self, store):
        """Same code twice keeps one entry"""
        assert store.add(make_code("148885")) is True
        assert store.add(make_code("148885", timestamp=1)) is False

        assert len(store) == 1
        assert store.snapshot()[0].timestamp == 1_700_000_000_000

    def test_duplicate_keeps_position(self, store):
        """A re-found code is not moved to the front"""
        store.add(make_code("111111"))
        store.add(make_code("222222"))
        store.add(make_code("111111"))

        assert [c.code for c in store.snapshot()] == ["222222", "111111"]

    def test_evicts_oldest_insert(self, store):
        """11 distinct codes keep 10 and drop the first inserted"""
        for i in range(11):
            # Timestamps descend so eviction cannot be timestamp based
            store.add(make_code(f"{i + 1:06d}", timestamp=1000 - i))

        codes = [c.code for c in store.snapshot()]
        assert len(codes) == 10
        assert "000001" not in codes
        assert codes[0] == "000011"
        assert codes[-1] == "000002"

    def test_custom_capacity(self):
        """Capacity is configurable"""
        store = CodeStore(capacity=2)
        for code in ("111111", "222222", "333333"):
            store.add(make_code(code))

        assert [c.code for c in store.snapshot()] == ["333333", "222222"]


class TestAddAll:
    """Test add_all method"""

    def test_counts_inserted(self, store):
        """Duplicates are not counted"""
        inserted = store.add_all(
            [make_code("111111"), make_code("111111"), make_code("222222")]
        )

        assert inserted == 2
        assert [c.code for c in store.snapshot()] == ["222222", "111111"]


class TestSnapshot:
    """Test snapshot method"""

    def test_snapshot_is_detached(self, store):
        """Mutating a snapshot does not touch the store"""
        store.add(make_code("111111"))
        snapshot = store.snapshot()
        snapshot.clear()

        assert len(store) == 1

    def test_concurrent_writers_keep_invariants(self, store):
        """Parallel inserts never exceed capacity or duplicate codes"""
        def writer(offset):
            for i in range(50):
                store.add(make_code(f"{(offset + i) % 30 + 100000}"))

        threads = [threading.Thread(target=writer, args=(n * 7,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        codes = [c.code for c in store.snapshot()]
        assert len(codes) <= 10
        assert len(codes) == len(set(codes))
