"""
HTTP API 測試（FastAPI TestClient）
"""
from services.payout_service import get_payout_gateway
from main import app

from conftest import ENTRANCE_FEE, INTERVAL, PLAYER, FailingPayoutGateway, player_address


def _enter(client, raffle_id, player=PLAYER, payment=ENTRANCE_FEE):
    return client.post(
        f"/api/raffles/{raffle_id}/enter",
        json={"player": player, "payment": payment}
    )


def _start_draw(client, raffle_id, fake_clock):
    fake_clock.advance(INTERVAL + 1)
    response = client.post(f"/api/raffles/{raffle_id}/upkeep", json={"perform_data": "0x"})
    assert response.status_code == 200
    return response.json()["request_id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_get_raffle(client, raffle_id):
    response = client.get(f"/api/raffles/{raffle_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["raffle_id"] == raffle_id
    assert body["state"] == "OPEN"
    assert body["entrance_fee"] == ENTRANCE_FEE
    assert body["interval"] == INTERVAL
    assert body["number_of_players"] == 0
    assert body["recent_winner"] is None


def test_get_unknown_raffle(client):
    assert client.get("/api/raffles/999").status_code == 404


def test_enter(client, raffle_id):
    response = _enter(client, raffle_id)

    assert response.status_code == 200
    assert response.json() == {
        "raffle_id": raffle_id,
        "player": PLAYER,
        "number_of_players": 1,
        "balance": ENTRANCE_FEE,
    }
    player = client.get(f"/api/raffles/{raffle_id}/players/0").json()
    assert player == {"index": 0, "player": PLAYER}


def test_enter_underpaid(client, raffle_id):
    response = _enter(client, raffle_id, payment=ENTRANCE_FEE - 1)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "NotEnoughPaid"


def test_enter_negative_payment_is_invalid(client, raffle_id):
    assert _enter(client, raffle_id, payment=-1).status_code == 422


def test_enter_while_calculating(client, raffle_id, fake_clock):
    _enter(client, raffle_id)
    _start_draw(client, raffle_id, fake_clock)

    response = _enter(client, raffle_id, player=player_address(2))

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "RaffleNotOpen"


def test_enter_with_large_payment(client, raffle_id):
    payment = 10 * 10**18

    response = _enter(client, raffle_id, payment=payment)

    assert response.status_code == 200
    assert response.json()["balance"] == payment
    assert client.get(f"/api/raffles/{raffle_id}").json()["balance"] == payment


def test_enter_payment_above_uint256_is_invalid(client, raffle_id):
    assert _enter(client, raffle_id, payment=2**256).status_code == 422


def test_player_out_of_range(client, raffle_id):
    assert client.get(f"/api/raffles/{raffle_id}/players/0").status_code == 404


def test_check_upkeep(client, raffle_id, fake_clock):
    assert client.get(f"/api/raffles/{raffle_id}/upkeep").json() == {
        "upkeep_needed": False,
        "perform_data": "0x",
    }

    _enter(client, raffle_id)
    fake_clock.advance(INTERVAL)

    assert client.get(f"/api/raffles/{raffle_id}/upkeep").json()["upkeep_needed"] is True


def test_perform_upkeep_not_needed(client, raffle_id):
    response = client.post(f"/api/raffles/{raffle_id}/upkeep")

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "UpkeepNotNeeded"
    assert (detail["balance"], detail["num_players"], detail["raffle_state"]) == (0, 0, "OPEN")


def test_perform_upkeep_invalid_data(client, raffle_id):
    response = client.post(f"/api/raffles/{raffle_id}/upkeep", json={"perform_data": "0xzz"})

    assert response.status_code == 400


def test_full_round(client, raffle_id, fake_clock):
    players = [player_address(n) for n in range(1, 5)]
    for player in players:
        assert _enter(client, raffle_id, player=player).status_code == 200
    request_id = _start_draw(client, raffle_id, fake_clock)
    assert request_id > 0
    assert client.get(f"/api/raffles/{raffle_id}").json()["state"] == "CALCULATING"

    request = client.get(f"/api/oracle/requests/{request_id}").json()
    assert request["status"] == "PENDING"
    assert request["consumer_id"] == raffle_id
    assert request["num_words"] == 1

    previous_timestamp = client.get(f"/api/raffles/{raffle_id}").json()["last_timestamp"]
    fake_clock.advance(3)
    random_word = 2**256 - 3
    response = client.post(
        f"/api/oracle/requests/{request_id}/fulfill",
        json={"consumer_id": raffle_id, "random_words": [random_word]}
    )
    assert response.json() == {"request_id": request_id, "success": True}

    winner = players[random_word % 4]
    body = client.get(f"/api/raffles/{raffle_id}").json()
    assert body["state"] == "OPEN"
    assert body["recent_winner"] == winner
    assert body["number_of_players"] == 0
    assert body["balance"] == 0
    assert body["pending_request_id"] is None
    assert body["last_timestamp"] > previous_timestamp

    payout = client.get(f"/api/raffles/{raffle_id}/payouts/{winner}").json()
    assert payout == {"recipient": winner, "total_received": 4 * ENTRANCE_FEE}

    event_types = [e["event_type"] for e in client.get(f"/api/raffles/{raffle_id}/events").json()]
    assert event_types.count("RAFFLE_ENTERED") == 4
    assert event_types[-3:] == ["RAFFLE_STATE_CHANGED", "WINNER_PICKED", "RANDOM_WORDS_FULFILLED"]

    winners = client.get(
        f"/api/raffles/{raffle_id}/events", params={"event_type": "WINNER_PICKED"}
    ).json()
    assert [e["data"] for e in winners] == [{"winner": winner}]


def test_fulfill_unknown_request(client, raffle_id):
    response = client.post(
        "/api/oracle/requests/77/fulfill",
        json={"consumer_id": raffle_id}
    )

    assert response.status_code == 404
    assert client.get(f"/api/raffles/{raffle_id}").json()["state"] == "OPEN"


def test_fulfill_wrong_consumer(client, raffle_id, fake_clock):
    _enter(client, raffle_id)
    request_id = _start_draw(client, raffle_id, fake_clock)

    response = client.post(
        f"/api/oracle/requests/{request_id}/fulfill",
        json={"consumer_id": raffle_id + 1}
    )

    assert response.status_code == 400
    assert client.get(f"/api/oracle/requests/{request_id}").json()["status"] == "PENDING"


def test_fulfill_with_negative_random_word_is_invalid(client, raffle_id, fake_clock):
    _enter(client, raffle_id)
    request_id = _start_draw(client, raffle_id, fake_clock)

    response = client.post(
        f"/api/oracle/requests/{request_id}/fulfill",
        json={"consumer_id": raffle_id, "random_words": [-1]}
    )

    assert response.status_code == 422
    assert client.get(f"/api/oracle/requests/{request_id}").json()["status"] == "PENDING"
    assert client.get(f"/api/raffles/{raffle_id}").json()["state"] == "CALCULATING"


def test_fulfill_with_failing_transfer(client, raffle_id, fake_clock):
    _enter(client, raffle_id)
    request_id = _start_draw(client, raffle_id, fake_clock)
    app.dependency_overrides[get_payout_gateway] = FailingPayoutGateway

    response = client.post(
        f"/api/oracle/requests/{request_id}/fulfill",
        json={"consumer_id": raffle_id}
    )

    assert response.status_code == 200
    assert response.json()["success"] is False
    body = client.get(f"/api/raffles/{raffle_id}").json()
    assert body["state"] == "CALCULATING"
    assert body["number_of_players"] == 1
    assert body["balance"] == ENTRANCE_FEE

    retry = client.post(
        f"/api/oracle/requests/{request_id}/fulfill",
        json={"consumer_id": raffle_id}
    )
    assert retry.status_code == 404
    request = client.get(f"/api/oracle/requests/{request_id}").json()
    assert request["status"] == "FULFILLED"
    assert request["success"] is False


def test_get_unknown_oracle_request(client):
    assert client.get("/api/oracle/requests/5").status_code == 404
