import pytest

from symbolic_gp.pools import DictionaryPool


def test_rented_dictionary_is_cleared_and_reused():
    pool = DictionaryPool()

    with pool.rented() as scratch:
        scratch['x0'] = 1.0
        first = scratch
    assert pool.available == 1

    with pool.rented() as scratch:
        assert scratch is first
        assert scratch == {}


def test_dictionary_returns_to_pool_when_block_raises():
    pool = DictionaryPool()

    with pytest.raises(RuntimeError):
        with pool.rented() as scratch:
            scratch['x0'] = 2.0
            raise RuntimeError("boom")

    assert pool.available == 1
    assert scratch == {}


def test_pool_keeps_at_most_max_size_items():
    pool = DictionaryPool(max_size=1)
    a = pool.rent()
    b = pool.rent()
    pool.give_back(a)
    pool.give_back(b)

    stats = pool.get_stats()
    assert stats['available'] == 1
    assert stats['created'] == 2
    assert stats['rentals'] == 2


def test_pool_size_must_be_positive():
    with pytest.raises(ValueError):
        DictionaryPool(max_size=0)
