"""
E2E tests walking financial requests through the whole approval workflow.

Actors (seeded in conftest):
- requester: asks for the money and submits receipts
- network pastor: first approval, own branch only
- lead pastor: extra approval above the threshold
- admin: final approval, delivery and closing
"""

import pytest
from fastapi.testclient import TestClient

RECEIPT = ["https://files.iglesia.local/boletas/2024-001.pdf"]
VOUCHER = ["https://files.iglesia.local/vouchers/2024-001.pdf"]


def open_request(client: TestClient, headers: dict, items: list) -> dict:
    response = client.post(
        "/financial-requests",
        json={
            "description": "Movilidad y refrigerio para la campana",
            "items": items,
            "depositType": "EXTERNAL",
            "bankName": "Interbank",
            "accountNumber": "200-3000-4000",
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def change_status(client: TestClient, request_id: int, headers: dict, status: str, **body):
    return client.patch(
        f"/financial-requests/{request_id}/status",
        json={"status": status, **body},
        headers=headers,
    )


@pytest.mark.integration
def test_small_request_skips_lead_approval(client: TestClient, seed, as_user, set_threshold, taxi_and_food):
    """
    Total 80 with threshold 100
    Expected: no lead approval; full path to CLOSED by the right roles
    """
    set_threshold(100)
    request = open_request(client, as_user(seed.requester), taxi_and_food)
    assert request["totalAmount"] == 80.0
    assert request["requiresLeadApproval"] is False
    request_id = request["id"]

    assert change_status(client, request_id, as_user(seed.network), "APPROVED_NETWORK").status_code == 200

    response = change_status(client, request_id, as_user(seed.lead), "APPROVED_LEAD")
    assert response.status_code == 400, "Lead approval is not reachable below the threshold"
    assert response.json()["error"]["kind"] == "STATE_CONFLICT"

    steps = [
        (seed.admin, "APPROVED_ADMIN", {}),
        (seed.admin, "MONEY_DELIVERED", {"evidenceUrls": VOUCHER}),
        (seed.requester, "EXPENSES_SUBMITTED", {"evidenceUrls": RECEIPT}),
        (seed.admin, "CLOSED", {}),
    ]
    for user_id, status, body in steps:
        response = change_status(client, request_id, as_user(user_id), status, **body)
        assert response.status_code == 200, f"{status}: {response.text}"
        assert response.json()["currentStatus"] == status

    final = client.get(f"/financial-requests/{request_id}", headers=as_user(seed.requester)).json()
    assert [entry["status"] for entry in final["statusHistory"]] == [
        "CREATED",
        "APPROVED_NETWORK",
        "APPROVED_ADMIN",
        "MONEY_DELIVERED",
        "EXPENSES_SUBMITTED",
        "CLOSED",
    ]
    assert all(step["completed"] for step in final["stateStepper"])


@pytest.mark.integration
def test_large_request_needs_lead_approval(client: TestClient, seed, as_user, set_threshold, taxi_and_food):
    """
    Same items with threshold 50
    Expected: APPROVED_NETWORK can only continue to APPROVED_LEAD
    """
    set_threshold(50)
    request = open_request(client, as_user(seed.requester), taxi_and_food)
    assert request["requiresLeadApproval"] is True
    request_id = request["id"]

    assert change_status(client, request_id, as_user(seed.network), "APPROVED_NETWORK").status_code == 200

    response = change_status(client, request_id, as_user(seed.admin), "APPROVED_ADMIN")
    assert response.status_code == 400, "Admin approval cannot skip the lead pastor"
    assert "APPROVED_LEAD" in response.json()["error"]["message"]

    response = change_status(client, request_id, as_user(seed.lead), "APPROVED_LEAD")
    assert response.status_code == 200
    response = change_status(client, request_id, as_user(seed.admin), "APPROVED_ADMIN")
    assert response.status_code == 200

    stepper = client.get(f"/financial-requests/{request_id}", headers=as_user(seed.admin)).json()["stateStepper"]
    assert {"status": "APPROVED_LEAD", "completed": True} in stepper


@pytest.mark.integration
def test_threshold_change_applies_on_next_edit(client: TestClient, seed, as_user, taxi_and_food):
    """
    Admin lowers the threshold after the request exists
    Expected: the next edit re-derives requiresLeadApproval
    """
    request = open_request(client, as_user(seed.requester), taxi_and_food)
    assert request["requiresLeadApproval"] is False

    response = client.patch("/financial-config", json={"maxAmountLeadApproval": 60}, headers=as_user(seed.admin))
    assert response.status_code == 200

    response = client.put(
        f"/financial-requests/{request['id']}",
        json={"description": "Movilidad y refrigerio, version final"},
        headers=as_user(seed.requester),
    )
    assert response.status_code == 200
    assert response.json()["requiresLeadApproval"] is True


@pytest.mark.integration
def test_remainder_is_refunded_before_closing(client: TestClient, seed, as_user, taxi_and_food):
    """
    Requester spent less than delivered
    Expected: REMAINDER_REFUNDED with amount and evidence, then CLOSED
    """
    request_id = open_request(client, as_user(seed.requester), taxi_and_food)["id"]
    change_status(client, request_id, as_user(seed.network), "APPROVED_NETWORK")
    change_status(client, request_id, as_user(seed.admin), "APPROVED_ADMIN")
    change_status(client, request_id, as_user(seed.admin), "MONEY_DELIVERED", evidenceUrls=VOUCHER)

    response = change_status(client, request_id, as_user(seed.requester), "EXPENSES_SUBMITTED", evidenceUrls=["  "])
    assert response.status_code == 400, "Whitespace-only evidence is not evidence"

    change_status(client, request_id, as_user(seed.requester), "EXPENSES_SUBMITTED", evidenceUrls=RECEIPT)

    response = change_status(
        client,
        request_id,
        as_user(seed.requester),
        "REMAINDER_REFUNDED",
        evidenceUrls=["https://files.iglesia.local/depositos/vuelto.pdf"],
        remainderAmount=15.5,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["remainderAmount"] == 15.5
    assert data["statusHistory"][-1]["metadata"]["remainderAmount"] == 15.5

    response = change_status(client, request_id, as_user(seed.admin), "CLOSED")
    assert response.status_code == 200

    stepper = client.get(f"/financial-requests/{request_id}", headers=as_user(seed.admin)).json()["stateStepper"]
    assert {"status": "REMAINDER_REFUNDED", "completed": True} in stepper


@pytest.mark.integration
def test_request_rejected_by_network_pastor(client: TestClient, seed, as_user, taxi_and_food):
    """
    Network pastor rejects at the first stage
    Expected: terminal REJECTED; requester alone could not have rejected
    """
    request_id = open_request(client, as_user(seed.requester), taxi_and_food)["id"]

    response = change_status(
        client, request_id, as_user(seed.requester), "REJECTED", rejectionReason="Me equivoque"
    )
    assert response.status_code == 403

    response = change_status(
        client, request_id, as_user(seed.north_network), "REJECTED", rejectionReason="No es mi sede"
    )
    assert response.status_code == 403, "Network pastors act on their own branch only"

    response = change_status(
        client, request_id, as_user(seed.network), "REJECTED", rejectionReason="Actividad cancelada"
    )
    assert response.status_code == 200
    assert response.json()["currentStatus"] == "REJECTED"

    response = change_status(client, request_id, as_user(seed.admin), "APPROVED_NETWORK")
    assert response.status_code == 400
