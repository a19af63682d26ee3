"""Tests for the recurring series blueprint."""

from __future__ import annotations

import unittest

from tests.helpers import GROUP_ID, RouteTestCase

SERIES_PAYLOAD = {
    "groupId": GROUP_ID,
    "frequency": "weekly",
    "dayOfWeek": 2,
    "startDate": "2030-01-01",
    "endDate": "2030-12-31",
    "timeOfDay": "19:00",
    "timezone": "UTC",
    "templateGame": {
        "title": "Tuesday Night Doubles",
        "location": "Rec Center",
        "maxParticipants": 8,
    },
}


class SeriesRoutesTestCase(RouteTestCase):
    """Test case for the recurring series API."""

    user_id = "olivia"

    def setUp(self) -> None:
        super().setUp()
        self.add_member("olivia", role="organizer")
        self.add_member("alice")

    def _create(self, payload=None) -> dict:
        response = self.client.post(
            "/api/recurring-series",
            headers=self._get_auth_headers(),
            json=payload or SERIES_PAYLOAD,
        )
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()

    def _as(self, user_id: str) -> None:
        self.mocks["verify_id_token"].return_value = {"uid": user_id}

    def test_create_series(self) -> None:
        series = self._create()
        self.assertEqual(series["groupId"], GROUP_ID)
        self.assertEqual(series["createdBy"], "olivia")
        self.assertEqual(series["templateGame"]["title"], "Tuesday Night Doubles")

    def test_create_validation(self) -> None:
        for change in (
            {"frequency": "daily"},
            {"dayOfWeek": 9},
            {"timeOfDay": "7pm"},
            {"startDate": "soon"},
            {"endDate": "2029-01-01"},
            {"groupId": ""},
        ):
            response = self.client.post(
                "/api/recurring-series",
                headers=self._get_auth_headers(),
                json={**SERIES_PAYLOAD, **change},
            )
            self.assertEqual(response.status_code, 400, change)

    def test_member_cannot_create(self) -> None:
        self._as("alice")
        response = self.client.post(
            "/api/recurring-series", headers=self._get_auth_headers(), json=SERIES_PAYLOAD
        )
        self.assertEqual(response.status_code, 403)

    def test_list_requires_group(self) -> None:
        self._create()
        response = self.client.get(
            "/api/recurring-series", headers=self._get_auth_headers()
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.get(
            f"/api/recurring-series?groupId={GROUP_ID}",
            headers=self._get_auth_headers(),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.get_json()), 1)

    def test_generate_and_view_instances(self) -> None:
        series = self._create()
        response = self.client.post(
            f"/api/recurring-series/{series['id']}/instances",
            headers=self._get_auth_headers(),
            json={"startDate": "2030-01-01", "endDate": "2030-01-31"},
        )
        self.assertEqual(response.status_code, 201)
        instances = response.get_json()["instances"]
        self.assertEqual(
            [i["instanceDate"] for i in instances],
            ["2030-01-01", "2030-01-08", "2030-01-15", "2030-01-22", "2030-01-29"],
        )
        self.assertEqual(instances[0]["scheduledTime"], "2030-01-01T19:00:00+00:00")

        self._as("alice")
        response = self.client.get(
            f"/api/recurring-series/{series['id']}?includeInstances=true",
            headers=self._get_auth_headers(),
        )
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data["series"]["id"], series["id"])
        self.assertEqual(len(data["instances"]), 5)

    def test_generate_requires_dates(self) -> None:
        series = self._create()
        response = self.client.post(
            f"/api/recurring-series/{series['id']}/instances",
            headers=self._get_auth_headers(),
            json={"startDate": "2030-02-01", "endDate": "2030-01-01"},
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            f"/api/recurring-series/{series['id']}/instances",
            headers=self._get_auth_headers(),
            json={"startDate": "2030-01-01"},
        )
        self.assertEqual(response.status_code, 400)

    def test_update_series_and_instances(self) -> None:
        series = self._create()
        self.client.post(
            f"/api/recurring-series/{series['id']}/instances",
            headers=self._get_auth_headers(),
            json={"startDate": "2030-01-01", "endDate": "2030-01-15"},
        )

        response = self.client.put(
            f"/api/recurring-series/{series['id']}?updateInstances=true",
            headers=self._get_auth_headers(),
            json={"location": "Outdoor Courts", "maxParticipants": 12},
        )
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data["updatedInstances"], 3)
        self.assertEqual(data["series"]["templateGame"]["location"], "Outdoor Courts")
        self.assertEqual(
            self.game(f"{series['id']}_2030-01-08")["maxParticipants"], 12
        )

    def test_delete_with_instances(self) -> None:
        series = self._create()
        self.client.post(
            f"/api/recurring-series/{series['id']}/instances",
            headers=self._get_auth_headers(),
            json={"startDate": "2030-01-01", "endDate": "2030-01-15"},
        )

        self._as("alice")
        response = self.client.delete(
            f"/api/recurring-series/{series['id']}", headers=self._get_auth_headers()
        )
        self.assertEqual(response.status_code, 403)

        self._as("olivia")
        response = self.client.delete(
            f"/api/recurring-series/{series['id']}?deleteInstances=true",
            headers=self._get_auth_headers(),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"deletedInstances": 3})

        response = self.client.get(
            f"/api/recurring-series/{series['id']}", headers=self._get_auth_headers()
        )
        self.assertEqual(response.status_code, 404)

    def test_unknown_route_returns_json(self) -> None:
        response = self.client.get("/api/nowhere", headers=self._get_auth_headers())
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["error"]["kind"], "NotFound")


if __name__ == "__main__":
    unittest.main()
