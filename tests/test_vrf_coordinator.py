"""
VRF Coordinator（Randomness Request / Callback）測試
"""
import pytest

from core.raffle_manager import RaffleManager
from core.config import get_network_config
from core.exceptions import NonexistentRequest, InvalidConsumer, InvalidRandomWords
from models import RaffleState, RandomnessRequest, RequestStatus
from services.vrf_coordinator import expand_random_words
from services.event_service import list_events, RANDOM_WORDS_FULFILLED

from conftest import ENTRANCE_FEE, PLAYER


def _snapshot(db, raffle_id):
    raffle = RaffleManager.get_raffle(db, raffle_id)
    return (
        raffle.state,
        raffle.balance,
        raffle.last_timestamp,
        raffle.recent_winner,
        raffle.pending_request_id,
        tuple(RaffleManager.get_players(db, raffle_id)),
    )


def test_expand_random_words_is_256_bit_and_deterministic():
    words = expand_random_words(1, 3)

    assert len(words) == 3
    assert len(set(words)) == 3
    assert all(0 <= word < 2**256 for word in words)
    assert expand_random_words(1, 3) == words
    assert expand_random_words(2, 1)[0] != words[0]


def test_unknown_request_is_rejected(db, calculating_raffle, coordinator):
    raffle_id, request_id = calculating_raffle
    before = _snapshot(db, raffle_id)

    with pytest.raises(NonexistentRequest):
        coordinator.fulfill_random_words(db, request_id + 100, raffle_id, [0])

    assert _snapshot(db, raffle_id) == before
    assert list_events(db, raffle_id, RANDOM_WORDS_FULFILLED) == []


def test_request_never_issued_on_open_raffle(db, entered_raffle, coordinator):
    before = _snapshot(db, entered_raffle)

    with pytest.raises(NonexistentRequest):
        coordinator.fulfill_random_words(db, 1, entered_raffle, [0])

    assert _snapshot(db, entered_raffle) == before
    assert before[0] == RaffleState.OPEN


def test_wrong_consumer_is_rejected(db, calculating_raffle, coordinator, fake_clock):
    raffle_id, request_id = calculating_raffle
    other_raffle = RaffleManager.deploy(db, get_network_config("local")).id
    RaffleManager.enter(db, other_raffle, PLAYER, ENTRANCE_FEE)
    before = _snapshot(db, raffle_id)

    with pytest.raises(InvalidConsumer):
        coordinator.fulfill_random_words(db, request_id, other_raffle, [0])

    assert _snapshot(db, raffle_id) == before
    assert coordinator.get_request(db, request_id).status == RequestStatus.PENDING

    # 正確的 consumer 仍然可以 fulfill
    assert coordinator.fulfill_random_words(db, request_id, raffle_id, [0]) is True
    assert RaffleManager.get_raffle(db, raffle_id).recent_winner == PLAYER
    assert RaffleManager.get_raffle(db, other_raffle).state == RaffleState.OPEN


def test_wrong_number_of_words_is_rejected(db, calculating_raffle, coordinator):
    raffle_id, request_id = calculating_raffle

    with pytest.raises(InvalidRandomWords):
        coordinator.fulfill_random_words(db, request_id, raffle_id, [1, 2])

    assert coordinator.get_request(db, request_id).status == RequestStatus.PENDING
    assert RaffleManager.get_raffle(db, raffle_id).state == RaffleState.CALCULATING


def test_request_can_only_be_fulfilled_once(db, calculating_raffle, coordinator):
    raffle_id, request_id = calculating_raffle
    assert coordinator.fulfill_random_words(db, request_id, raffle_id) is True

    with pytest.raises(NonexistentRequest):
        coordinator.fulfill_random_words(db, request_id, raffle_id)

    request = coordinator.get_request(db, request_id)
    assert request.status == RequestStatus.FULFILLED
    assert request.success is True
    assert request.fulfilled_at is not None


def test_get_request_unknown(db, coordinator):
    with pytest.raises(NonexistentRequest):
        coordinator.get_request(db, 12345)


def test_request_ids_are_not_reused(db, entered_raffle, coordinator):
    first = coordinator.request_random_words(
        db, entered_raffle, "0xkey", 1, 3, 500000, 1
    )
    second = coordinator.request_random_words(
        db, entered_raffle, "0xkey", 1, 3, 500000, 1
    )
    db.commit()

    assert first >= 1
    assert second > first
    assert db.query(RandomnessRequest).count() == 2
