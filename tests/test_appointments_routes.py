"""Route tests for viewing appointments."""

import pytest
from sqlalchemy import select

from houses_bc.app.routes.appointments import router as appointments_router
from houses_bc.app.routes.progress import router as progress_router
from houses_bc.domain.models import User

BOOKING = {
    "propertyAddress": "88 Beach Ave, Vancouver, BC",
    "propertyDetails": {"zpid": "123", "price": 799000},
    "preferredDate": "2026-11-02T00:00:00Z",
    "preferredTime": "10:00 AM",
    "notes": "Parking?",
}


@pytest.fixture
async def admin(make_user):
    return await make_user(phone="+16045550000", role="admin", name="Admin")


@pytest.fixture
async def client_user(make_user):
    return await make_user(phone="+16045551234", name="Casey Client")


class TestCreateAppointment:
    async def test_client_books_for_self(self, make_client, client_user, bearer):
        async with make_client(
            appointments_router, progress_router, headers=bearer(client_user)
        ) as client:
            resp = await client.post("/api/appointments", json=BOOKING)
            progress = (await client.get(f"/api/progress/{client_user.id}")).json()["data"]

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["userId"] == client_user.id
        assert data["clientPhone"] == "+16045551234"
        assert data["clientName"] == "Casey Client"
        assert data["status"] == "pending"
        assert data["progressUpdated"] is True
        assert progress["milestones"]["step7_bookViewing"]["status"] == "completed"

    async def test_anonymous_visitor_is_registered(self, make_client, db_session):
        payload = {**BOOKING, "clientName": "Walk In", "clientPhone": "+16045559999"}
        async with make_client(appointments_router) as client:
            resp = await client.post("/api/appointments", json=payload)

        assert resp.status_code == 201
        user = (
            await db_session.execute(select(User).where(User.phone_number == "+16045559999"))
        ).scalar_one()
        assert user.verified is False
        assert user.role == "client"
        assert resp.json()["data"]["userId"] == user.id

    async def test_anonymous_requires_contact(self, make_client):
        async with make_client(appointments_router) as client:
            resp = await client.post("/api/appointments", json=BOOKING)
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "contact",
        [
            {"clientName": "X", "clientPhone": "+16045559999"},
            {"clientName": "Walk In", "clientPhone": "1"},
        ],
    )
    async def test_malformed_contact_is_rejected(self, make_client, db_session, contact):
        async with make_client(appointments_router) as client:
            resp = await client.post("/api/appointments", json={**BOOKING, **contact})

        assert resp.status_code == 422
        users = (await db_session.execute(select(User))).scalars().all()
        assert users == []

    async def test_admin_books_for_existing_client(self, make_client, admin, client_user, bearer):
        payload = {**BOOKING, "clientName": "Casey Client", "clientPhone": client_user.phone_number}
        async with make_client(appointments_router, headers=bearer(admin)) as client:
            resp = await client.post("/api/appointments", json=payload)
        assert resp.json()["data"]["userId"] == client_user.id


class TestReadAndUpdate:
    async def _book(self, make_client, user, bearer):
        async with make_client(appointments_router, headers=bearer(user)) as client:
            resp = await client.post("/api/appointments", json=BOOKING)
        return resp.json()["data"]["id"]

    async def test_client_sees_only_own(self, make_client, make_user, client_user, admin, bearer):
        other = await make_user(phone="+16045557777", name="Other")
        await self._book(make_client, client_user, bearer)
        await self._book(make_client, other, bearer)

        async with make_client(appointments_router, headers=bearer(client_user)) as client:
            mine = (await client.get("/api/appointments")).json()["data"]
        async with make_client(appointments_router, headers=bearer(admin)) as client:
            everything = (await client.get("/api/appointments")).json()["data"]

        assert [a["userId"] for a in mine] == [client_user.id]
        assert len(everything) == 2

    async def test_list_requires_auth(self, make_client):
        async with make_client(appointments_router) as client:
            resp = await client.get("/api/appointments")
        assert resp.status_code == 401

    async def test_other_client_cannot_read(self, make_client, make_user, client_user, bearer):
        appt_id = await self._book(make_client, client_user, bearer)
        stranger = await make_user(phone="+16045558888")
        async with make_client(appointments_router, headers=bearer(stranger)) as client:
            resp = await client.get(f"/api/appointments/{appt_id}")
        assert resp.status_code == 403

    async def test_owner_updates_but_not_admin_notes(self, make_client, client_user, bearer):
        appt_id = await self._book(make_client, client_user, bearer)
        async with make_client(appointments_router, headers=bearer(client_user)) as client:
            resp = await client.put(
                f"/api/appointments/{appt_id}",
                json={"preferredTime": "2:00 PM", "adminNotes": "sneaky"},
            )
        data = resp.json()["data"]
        assert data["preferredTime"] == "2:00 PM"
        assert data["adminNotes"] is None

    async def test_admin_sets_status(self, make_client, client_user, admin, bearer):
        appt_id = await self._book(make_client, client_user, bearer)
        async with make_client(appointments_router, headers=bearer(admin)) as client:
            resp = await client.patch(
                f"/api/appointments/{appt_id}",
                json={"status": "confirmed", "adminNotes": "Agent: Sam"},
            )
        assert resp.json()["data"]["status"] == "confirmed"
        assert resp.json()["data"]["adminNotes"] == "Agent: Sam"

    async def test_client_cannot_set_status(self, make_client, client_user, bearer):
        appt_id = await self._book(make_client, client_user, bearer)
        async with make_client(appointments_router, headers=bearer(client_user)) as client:
            resp = await client.patch(f"/api/appointments/{appt_id}", json={"status": "confirmed"})
        assert resp.status_code == 403

    async def test_invalid_status(self, make_client, client_user, admin, bearer):
        appt_id = await self._book(make_client, client_user, bearer)
        async with make_client(appointments_router, headers=bearer(admin)) as client:
            resp = await client.patch(f"/api/appointments/{appt_id}", json={"status": "maybe"})
        assert resp.status_code == 422

    async def test_admin_deletes(self, make_client, client_user, admin, bearer):
        appt_id = await self._book(make_client, client_user, bearer)
        async with make_client(appointments_router, headers=bearer(admin)) as client:
            deleted = await client.delete(f"/api/appointments/{appt_id}")
            missing = await client.get(f"/api/appointments/{appt_id}")
        assert deleted.status_code == 200
        assert missing.status_code == 404
