import pytest

from app.graphql.context import Context
from app.graphql.schema import schema

CREATE_SUBSCRIPTION = """
mutation Create($input: CreateSubscriptionInput!) {
  createSubscription(input: $input) {
    message
    subscription { id status totalPrice amountPaid remainingBalance planName }
  }
}
"""

RECORD_PAYMENT = """
mutation Pay($input: RecordPaymentInput!) {
  recordPayment(input: $input) {
    message
    payment { amount method isInitialPayment percentageOfTotal processedBy }
    subscription { amountPaid remainingBalance isFullyPaid }
  }
}
"""

CHECK_IN = """
mutation CheckIn($input: CheckInInput!) {
  checkIn(input: $input) {
    granted
    message
    attendance { accessResult deviceToken }
  }
}
"""

UPDATE_STATUS = """
mutation Status($input: UpdateSubscriptionStatusInput!) {
  updateSubscriptionStatus(input: $input) {
    message
    subscription { status }
  }
}
"""

EVALUATE_ACCESS = """
query Evaluate($clientId: Int!) {
  evaluateAccess(clientId: $clientId) { granted result reason }
}
"""

LOGIN = """
mutation Login($data: LoginInput!) {
  login(data: $data) { accessToken message }
}
"""


async def run(db, query, variables=None, user=None):
    return await schema.execute(query, variable_values=variables, context_value=Context(db=db, user=user))


@pytest.fixture
async def subscription_id(db, gym_client, monthly_plan, staff):
    result = await run(
        db, CREATE_SUBSCRIPTION, {"input": {"clientId": gym_client.id, "planId": monthly_plan.id}}, staff
    )
    assert result.errors is None
    return result.data["createSubscription"]["subscription"]["id"]


class TestAuthentication:
    async def test_queries_require_a_login(self, db, gym_client):
        result = await run(db, EVALUATE_ACCESS, {"clientId": gym_client.id})

        assert result.data["evaluateAccess"] is None
        assert result.errors[0].message == "Authentication required."

    async def test_login_with_valid_credentials(self, db, staff):
        result = await run(db, LOGIN, {"data": {"identifier": "frontdesk", "password": "desk-pass"}})

        assert result.errors is None
        assert result.data["login"]["accessToken"]
        assert result.data["login"]["message"] == "Login successful"

    async def test_login_with_wrong_password(self, db, staff):
        result = await run(db, LOGIN, {"data": {"identifier": "frontdesk", "password": "nope"}})

        assert result.data["login"]["accessToken"] is None
        assert result.data["login"]["message"] == "Invalid credentials"


class TestFrontDeskFlow:
    async def test_new_subscription_starts_unpaid(self, db, gym_client, staff, subscription_id):
        result = await run(db, EVALUATE_ACCESS, {"clientId": gym_client.id}, staff)

        assert result.data["evaluateAccess"]["granted"] is False
        assert result.data["evaluateAccess"]["result"] == "DENIED_UNPAID"

    async def test_partial_payment_then_check_in(self, db, gym_client, staff, subscription_id):
        paid = await run(
            db, RECORD_PAYMENT,
            {"input": {"subscriptionId": subscription_id, "amount": 250.0, "method": "CASH"}},
            staff,
        )
        assert paid.errors is None
        payload = paid.data["recordPayment"]
        assert payload["payment"]["isInitialPayment"] is True
        assert payload["payment"]["percentageOfTotal"] == 50.0
        assert payload["payment"]["processedBy"] == staff.id
        assert payload["subscription"]["remainingBalance"] == 250.0
        assert payload["subscription"]["isFullyPaid"] is False

        checked_in = await run(db, CHECK_IN, {"input": {"clientId": gym_client.id, "deviceToken": "door-1"}}, staff)

        assert checked_in.errors is None
        assert checked_in.data["checkIn"]["granted"] is True
        assert checked_in.data["checkIn"]["attendance"]["accessResult"] == "GRANTED"
        assert checked_in.data["checkIn"]["attendance"]["deviceToken"] == "door-1"

    async def test_invalid_payment_returns_message(self, db, staff, subscription_id):
        result = await run(
            db, RECORD_PAYMENT, {"input": {"subscriptionId": subscription_id, "amount": 0}}, staff
        )

        assert result.errors is None
        assert result.data["recordPayment"]["payment"] is None
        assert result.data["recordPayment"]["message"].startswith("Error recording payment")

    async def test_duplicate_subscription_is_reported(self, db, gym_client, monthly_plan, staff, subscription_id):
        result = await run(
            db, CREATE_SUBSCRIPTION, {"input": {"clientId": gym_client.id, "planId": monthly_plan.id}}, staff
        )

        assert result.data["createSubscription"]["subscription"] is None
        assert "already has active subscription" in result.data["createSubscription"]["message"]


class TestAdminOperations:
    async def test_staff_cannot_change_status(self, db, staff, subscription_id):
        result = await run(
            db, UPDATE_STATUS, {"input": {"subscriptionId": subscription_id, "status": "SUSPENDED"}}, staff
        )

        assert result.errors[0].message == "Administrator role required."

    async def test_admin_suspension_blocks_check_in(self, db, gym_client, staff, admin, subscription_id):
        await run(db, RECORD_PAYMENT, {"input": {"subscriptionId": subscription_id, "amount": 500.0}}, staff)

        suspended = await run(
            db, UPDATE_STATUS, {"input": {"subscriptionId": subscription_id, "status": "SUSPENDED"}}, admin
        )
        assert suspended.data["updateSubscriptionStatus"]["subscription"]["status"] == "SUSPENDED"

        checked_in = await run(db, CHECK_IN, {"input": {"clientId": gym_client.id}}, staff)

        assert checked_in.data["checkIn"]["granted"] is False
        assert checked_in.data["checkIn"]["attendance"]["accessResult"] == "DENIED_SUSPENDED"
        assert checked_in.data["checkIn"]["message"] == "Subscription is suspended by admin"

    async def test_cancelled_subscription_cannot_be_reactivated(self, db, admin, subscription_id):
        await run(db, UPDATE_STATUS, {"input": {"subscriptionId": subscription_id, "status": "CANCELLED"}}, admin)

        result = await run(
            db, UPDATE_STATUS, {"input": {"subscriptionId": subscription_id, "status": "ACTIVE"}}, admin
        )

        assert result.data["updateSubscriptionStatus"]["subscription"] is None
        assert "CANCELLED to ACTIVE" in result.data["updateSubscriptionStatus"]["message"]
