import uuid
from datetime import datetime, timezone


def test_get_balance(client, caller, mock_credit_service):
    mock_credit_service.get_balance.return_value = {"user_id": caller.id, "balance": 42}

    response = client.get("/credits/balance")

    assert response.status_code == 200
    assert response.json() == {"user_id": str(caller.id), "balance": 42}


def test_get_transactions(client, caller, mock_credit_service):
    usage_id = uuid.uuid4()
    mock_credit_service.get_transactions.return_value = [
        {
            "id": uuid.uuid4(),
            "type": "refund",
            "credits_delta": 1,
            "status": "completed",
            "description": "Refund for a.pdf page 1",
            "session_id": uuid.uuid4(),
            "job_id": uuid.uuid4(),
            "related_transaction_id": usage_id,
            "balance_after": 10,
            "created_at": datetime.now(timezone.utc),
        }
    ]

    response = client.get("/credits/transactions?limit=10")

    assert response.status_code == 200
    body = response.json()
    assert body[0]["type"] == "refund"
    assert body[0]["related_transaction_id"] == str(usage_id)
    mock_credit_service.get_transactions.assert_awaited_once_with(caller.id, limit=10, offset=0)
