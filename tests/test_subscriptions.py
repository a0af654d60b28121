"""Tests for subscription endpoints."""

import json
from datetime import date

import pytest

from subplanner.config import settings
from subplanner.services.events import notifier
from subplanner.services.storage import DatabaseStorage

HEADER = "id,name,price,billingCycle,nextBillingDate,category,color"


def create(client, name: str = "Netflix", **overrides) -> dict:
    """Helper to create a subscription through the API."""
    payload = {
        "name": name,
        "price": 1490,
        "billing_cycle": "monthly",
        "next_billing_date": "2024-01-01",
    }
    payload.update(overrides)
    response = client.post("/subscriptions", json=payload)
    assert response.status_code == 201
    return response.json()


# =============================================================================
# Create Subscription Tests
# =============================================================================


class TestCreateSubscription:
    """Tests for POST /subscriptions endpoint."""

    def test_create_minimal_fields(self, client):
        """Should create subscription with minimal required fields."""
        data = create(client)

        assert data["name"] == "Netflix"
        assert data["price"] == 1490
        assert data["billing_cycle"] == "monthly"
        assert data["next_billing_date"] == "2024-01-01"
        assert data["category"] is None
        assert data["color"] is None
        assert data["order"] == 1
        assert data["is_active"] is True
        assert data["id"]

    def test_create_all_fields(self, client):
        data = create(
            client,
            name="Spotify",
            price=9.99,
            billing_cycle="yearly",
            category="Music",
            color="bg-green-400",
        )

        assert data["price"] == 9.99
        assert data["billing_cycle"] == "yearly"
        assert data["category"] == "Music"
        assert data["color"] == "bg-green-400"

    def test_create_free_tier(self, client):
        assert create(client, price=0)["price"] == 0

    def test_create_duplicate_name_allowed(self, client):
        """Should allow creating subscriptions with same name."""
        first = create(client)
        second = create(client)
        assert first["id"] != second["id"]
        assert second["order"] == 2

    def test_create_persists_under_canonical_key(self, client, db_session):
        created = create(client)

        stored = json.loads(DatabaseStorage(db_session).get(settings.storage_key))
        assert stored[0]["id"] == created["id"]
        assert stored[0]["billingCycle"] == "monthly"
        assert stored[0]["isActive"] is True

    def test_create_emits_change(self, client):
        received = []
        unsubscribe = notifier.subscribe(received.append)
        try:
            create(client)
        finally:
            unsubscribe()

        assert [event.action for event in received] == ["add"]


class TestCreateValidation:
    """Tests for subscription creation validation."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"name": ""},
            {"price": -1},
            {"billing_cycle": "weekly"},
            {"next_billing_date": "01/01/2024"},
            {"next_billing_date": "2024-02-30"},
        ],
    )
    def test_invalid_payload(self, client, overrides):
        payload = {
            "name": "Netflix",
            "price": 1490,
            "billing_cycle": "monthly",
            "next_billing_date": "2024-01-01",
        }
        payload.update(overrides)

        response = client.post("/subscriptions", json=payload)
        assert response.status_code == 422

    def test_missing_name(self, client):
        response = client.post(
            "/subscriptions",
            json={"price": 1490, "billing_cycle": "monthly", "next_billing_date": "2024-01-01"},
        )
        assert response.status_code == 422


# =============================================================================
# List / Get
# =============================================================================


class TestListSubscriptions:
    def test_empty(self, client):
        response = client.get("/subscriptions")
        assert response.status_code == 200
        assert response.json() == []

    def test_list_in_order(self, client):
        names = ["A", "B", "C"]
        for name in names:
            create(client, name=name)

        data = client.get("/subscriptions").json()
        assert [s["name"] for s in data] == names

    def test_get(self, client):
        created = create(client)
        response = client.get(f"/subscriptions/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

    def test_get_not_found(self, client):
        response = client.get("/subscriptions/missing")
        assert response.status_code == 404


# =============================================================================
# Update / Delete
# =============================================================================


class TestUpdateSubscription:
    def test_update(self, client):
        created = create(client, category="Entertainment")

        response = client.put(
            f"/subscriptions/{created['id']}",
            json={
                "name": "Netflix Premium",
                "price": 1980,
                "billing_cycle": "monthly",
                "next_billing_date": "2024-02-01",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == created["id"]
        assert data["name"] == "Netflix Premium"
        assert data["price"] == 1980
        assert data["next_billing_date"] == "2024-02-01"
        assert data["category"] is None  # Cleared by the full replacement
        assert data["order"] == created["order"]
        assert data["is_active"] is True

    def test_update_keeps_paused_state(self, client):
        created = create(client)
        client.post(f"/subscriptions/{created['id']}/toggle-active")

        response = client.put(
            f"/subscriptions/{created['id']}",
            json={
                "name": "Netflix",
                "price": 990,
                "billing_cycle": "monthly",
                "next_billing_date": "2024-01-01",
            },
        )

        assert response.json()["is_active"] is False

    def test_update_not_found(self, client):
        response = client.put(
            "/subscriptions/missing",
            json={
                "name": "Netflix",
                "price": 990,
                "billing_cycle": "monthly",
                "next_billing_date": "2024-01-01",
            },
        )
        assert response.status_code == 404


class TestDeleteSubscription:
    def test_delete(self, client):
        created = create(client)

        response = client.delete(f"/subscriptions/{created['id']}")

        assert response.status_code == 204
        assert client.get("/subscriptions").json() == []

    def test_delete_missing_is_not_an_error(self, client):
        response = client.delete("/subscriptions/missing")
        assert response.status_code == 204


# =============================================================================
# Reorder / Toggle
# =============================================================================


class TestReorder:
    def test_reorder(self, client):
        ids = [create(client, name=name)["id"] for name in ["A", "B", "C"]]
        new_order = [ids[2], ids[0], ids[1]]

        response = client.post("/subscriptions/reorder", json={"ids": new_order})

        assert response.status_code == 200
        assert [s["id"] for s in response.json()] == new_order
        listed = client.get("/subscriptions").json()
        assert [s["id"] for s in listed] == new_order
        assert [s["order"] for s in listed] == [0, 1, 2]


class TestToggleActive:
    def test_toggle_twice(self, client):
        created = create(client)

        first = client.post(f"/subscriptions/{created['id']}/toggle-active")
        second = client.post(f"/subscriptions/{created['id']}/toggle-active")

        assert first.json()["is_active"] is False
        assert second.json()["is_active"] is True

    def test_toggle_not_found(self, client):
        response = client.post("/subscriptions/missing/toggle-active")
        assert response.status_code == 404


# =============================================================================
# Summary
# =============================================================================


class TestSummary:
    def test_summary_excludes_paused(self, client):
        create(client, name="Netflix", price=1490, billing_cycle="monthly", category="Entertainment")
        create(client, name="Prime", price=12000, billing_cycle="yearly")
        paused = create(client, name="Paused", price=5000)
        client.post(f"/subscriptions/{paused['id']}/toggle-active")

        response = client.get("/subscriptions/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["monthly_total"] == 2490
        assert data["yearly_total"] == 29880
        assert data["subscription_count"] == 3
        assert data["active_count"] == 2
        assert {c["category"] for c in data["categories"]} == {"Entertainment", "uncategorized"}


# =============================================================================
# Export / Import
# =============================================================================


class TestExport:
    def test_export(self, client):
        created = create(client, name='Acme, "Pro"', category="Tools")

        response = client.get("/subscriptions/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        filename = f"subscriptions_{date.today().strftime('%Y%m%d')}.csv"
        assert filename in response.headers["content-disposition"]
        assert response.text.split("\n") == [
            HEADER,
            f'{created["id"]},"Acme, ""Pro""",1490,monthly,2024-01-01,Tools,',
        ]


class TestImport:
    IMPORT_CSV = (
        f"{HEADER}\n"
        "imp-1,Netflix,1490,monthly,2024-01-01,Entertainment,\n"
        "imp-2,Spotify,980,monthly,2024-02-01,,\n"
    )

    def _seed(self, client, count: int = 5):
        for i in range(count):
            create(client, name=f"Existing {i}")

    def test_import_replace(self, client):
        self._seed(client)

        response = client.post(
            "/subscriptions/import",
            json={"content": self.IMPORT_CSV, "mode": "replace"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data == {"mode": "replace", "imported_count": 2, "total_count": 2, "errors": []}
        listed = client.get("/subscriptions").json()
        assert {s["id"] for s in listed} == {"imp-1", "imp-2"}

    def test_import_append(self, client):
        self._seed(client)

        response = client.post(
            "/subscriptions/import",
            json={"content": self.IMPORT_CSV, "mode": "append"},
        )

        assert response.json()["total_count"] == 7
        listed = client.get("/subscriptions").json()
        assert len(listed) == 7
        # Imported rows carry no order and go last
        assert [s["id"] for s in listed[-2:]] == ["imp-1", "imp-2"]

    def test_import_defaults_to_append(self, client):
        self._seed(client, 1)
        response = client.post("/subscriptions/import", json={"content": self.IMPORT_CSV})
        assert response.json()["mode"] == "append"
        assert response.json()["total_count"] == 3

    def test_import_reports_row_errors(self, client):
        content = self.IMPORT_CSV + "bad,BadRow,abc,monthly,2024-01-01,,\n"

        response = client.post("/subscriptions/import", json={"content": content, "mode": "replace"})

        data = response.json()
        assert data["imported_count"] == 2
        assert data["errors"] == ["Line 4: invalid price (abc)"]

    def test_import_without_valid_rows_keeps_collection(self, client):
        self._seed(client, 3)

        response = client.post(
            "/subscriptions/import",
            json={"content": HEADER, "mode": "replace"},
        )

        data = response.json()
        assert data["imported_count"] == 0
        assert data["total_count"] == 3
        assert len(data["errors"]) == 1
        assert len(client.get("/subscriptions").json()) == 3

    def test_import_invalid_mode(self, client):
        response = client.post("/subscriptions/import", json={"content": self.IMPORT_CSV, "mode": "merge"})
        assert response.status_code == 422

    def test_export_then_import_round_trip(self, client):
        create(client, name="Netflix", category="Entertainment", color="bg-pink-400")
        create(client, name="Prime", price=5900, billing_cycle="yearly")
        before = client.get("/subscriptions").json()

        exported = client.get("/subscriptions/export").text
        client.post("/subscriptions/import", json={"content": exported, "mode": "replace"})

        after = client.get("/subscriptions").json()
        fields = ["id", "name", "price", "billing_cycle", "next_billing_date", "category", "color"]
        assert [{f: s[f] for f in fields} for s in after] == [{f: s[f] for f in fields} for s in before]


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
