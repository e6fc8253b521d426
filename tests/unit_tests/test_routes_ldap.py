"""Tests for LDAP directory and view endpoints."""

from fastapi import status

from tests.consts import ADMIN_BASE


class TestDirectoryEndpoints:
    """Tests for directory status and sync status."""

    def test_ldap_status(self, client):
        """Test the connection state is returned on the view."""
        response = client.get(f"{ADMIN_BASE}/ldap/status")

        assert response.status_code == status.HTTP_200_OK
        state = response.json()["connection_state"]
        assert state["reachable"] is True
        assert state["server_info"][0]["host"] == "ldap-1.corp.test"

    def test_ldap_status_unreachable(self, client, directory_gateway):
        """Test an unreachable directory returns 503 with a readable message."""
        directory_gateway.unreachable = True

        response = client.get(f"{ADMIN_BASE}/ldap/status")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        body = response.json()
        assert body["kind"] == "DIRECTORY_UNREACHABLE"
        assert body["body"] == "Connection to the directory server timed out. Please try again later."
        assert body["view"]["directory_error"]["kind"] == "DIRECTORY_UNREACHABLE"

    def test_sync_status_disabled(self, client, directory_gateway):
        """Test a non-enterprise build reports sync status disabled without calling the directory."""
        response = client.get(f"{ADMIN_BASE}/ldap/sync-status")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["sync_status"] == {"enabled": False}
        assert directory_gateway.requests == []


class TestMappingEndpoints:
    """Tests for mapping lookup and clearing."""

    def test_get_mapping(self, client):
        """Test the attribute mapping of a user is returned."""
        response = client.get(f"{ADMIN_BASE}/ldap/users/bob/mapping")

        assert response.status_code == status.HTTP_200_OK
        mapping = response.json()["mapping"]
        assert mapping["login"] == "bob"
        assert mapping["attribute_values"]["name"] == "Bob Brown"

    def test_get_mapping_unknown_user(self, client):
        """Test an unknown directory user returns 502 and no mapping."""
        client.get(f"{ADMIN_BASE}/ldap/users/alice/mapping")

        response = client.get(f"{ADMIN_BASE}/ldap/users/mallory/mapping")

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        body = response.json()
        assert body["kind"] == "MAPPING_UNAVAILABLE"
        assert body["view"]["mapping"] is None

    def test_clear_mapping_twice(self, client):
        """Test clearing the mapping is idempotent."""
        client.get(f"{ADMIN_BASE}/ldap/users/mallory/mapping")

        first = client.delete(f"{ADMIN_BASE}/view/mapping")
        second = client.delete(f"{ADMIN_BASE}/view/mapping")

        assert first.status_code == second.status_code == status.HTTP_200_OK
        assert first.json() == second.json()
        assert second.json()["mapping"] is None
        assert second.json()["mapping_error"] is None


class TestViewEndpoints:
    """Tests for view state endpoints."""

    def test_initial_view(self, client):
        """Test a new view starts idle and empty."""
        response = client.get(f"{ADMIN_BASE}/view")

        assert response.status_code == status.HTTP_200_OK
        view = response.json()
        assert view["status"] == "IDLE"
        assert view["user"] is None
        assert view["sessions"] == []

    def test_clear_error(self, client):
        """Test a user error can be dismissed."""
        client.get(f"{ADMIN_BASE}/users/99")

        response = client.delete(f"{ADMIN_BASE}/view/error")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["error"] is None

    def test_default_view_without_header(self, plain_client):
        """Test requests without X-View-ID use the default view."""
        response = plain_client.get(f"{ADMIN_BASE}/view")

        assert response.json()["view_id"] == "default"
