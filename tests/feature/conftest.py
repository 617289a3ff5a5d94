import pytest

RULES_URL = "/api/v1/rules"


@pytest.fixture
def exhaust_anonymous_quota(client):
    """Send the five calls the seeded Anonymous rule admits per minute."""

    def _exhaust():
        for _ in range(5):
            assert client.get(RULES_URL).status_code == 200

    return _exhaust
