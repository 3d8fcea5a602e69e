"""
Integration tests for the admin route group.
"""
import pytest


@pytest.mark.asyncio
class TestAdminAccess:
    async def test_requires_admin(self, client, make_user):
        _, passenger = await make_user("passenger")
        for path in ("/admin/users", "/admin/drivers", "/admin/rides", "/admin/stats", "/admin/messages"):
            resp = await client.get(path, headers=passenger)
            assert resp.status_code == 403, path
            assert resp.json()["detail"] == "Admin access required"

    async def test_requires_token(self, client):
        assert (await client.get("/admin/stats")).status_code == 401


@pytest.mark.asyncio
class TestModeration:
    async def test_filter_users(self, client, make_user):
        await make_user("passenger")
        driver_user, _ = await make_user("driver")
        _, admin = await make_user("admin")

        resp = await client.get("/admin/users", headers=admin, params={"user_type": "driver", "status": "pending"})
        assert [u["id"] for u in resp.json()["users"]] == [driver_user["id"]]

    async def test_approve_driver_by_driver_row(self, client, make_user):
        driver_user, _ = await make_user("driver")
        _, admin = await make_user("admin")
        driver_row = (await client.get("/admin/drivers", headers=admin)).json()["drivers"][0]

        resp = await client.put(f"/admin/drivers/{driver_row['id']}/status", headers=admin, json={"status": "approved"})
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == driver_user["id"]
        assert resp.json()["user"]["status"] == "approved"

    async def test_user_status_validation(self, client, make_user):
        user, _ = await make_user("passenger")
        _, admin = await make_user("admin")

        resp = await client.put(f"/admin/users/{user['id']}/status", headers=admin, json={})
        assert resp.status_code == 400
        resp = await client.put(f"/admin/users/{user['id']}/status", headers=admin, json={"status": "banana"})
        assert resp.status_code == 400
        resp = await client.put(f"/admin/users/{user['id']}/status", headers=admin, json={"status": "suspended"})
        assert resp.json()["user"]["status"] == "suspended"

    async def test_unknown_targets(self, client, make_user):
        _, admin = await make_user("admin")
        assert (await client.put("/admin/users/nope/status", headers=admin, json={"status": "approved"})).status_code == 404
        assert (await client.put("/admin/drivers/nope/status", headers=admin, json={"status": "approved"})).status_code == 404


@pytest.mark.asyncio
class TestAdminRides:
    async def test_force_status_bypasses_graph(self, client, make_user, create_ride):
        _, passenger = await make_user("passenger")
        _, admin = await make_user("admin")
        ride = await create_ride(passenger)

        resp = await client.put(f"/admin/rides/{ride['id']}/status", headers=admin, json={"status": "completed"})
        assert resp.status_code == 200
        assert resp.json()["ride"]["status"] == "completed"

        resp = await client.put(f"/admin/rides/{ride['id']}/status", headers=admin, json={"status": "requested"})
        assert resp.json()["ride"]["status"] == "requested"

    async def test_force_status_still_uses_closed_set(self, client, make_user, create_ride):
        _, passenger = await make_user("passenger")
        _, admin = await make_user("admin")
        ride = await create_ride(passenger)
        resp = await client.put(f"/admin/rides/{ride['id']}/status", headers=admin, json={"status": "lost"})
        assert resp.status_code == 400

    async def test_list_rides_by_status(self, client, make_user, create_ride):
        _, passenger = await make_user("passenger")
        _, admin = await make_user("admin")
        kept = await create_ride(passenger)
        gone = await create_ride(passenger)
        await client.put(f"/rides/{gone['id']}/cancel", headers=passenger)

        resp = await client.get("/admin/rides", headers=admin, params={"status": "requested"})
        assert [r["id"] for r in resp.json()["rides"]] == [kept["id"]]
        assert (await client.get("/admin/rides", headers=admin, params={"status": "x"})).status_code == 400

    async def test_stats(self, client, make_user, create_ride):
        _, passenger = await make_user("passenger")
        await make_user("driver")
        _, admin = await make_user("admin")
        await create_ride(passenger, fare="150.25")
        await create_ride(passenger, fare="49.75")

        resp = await client.get("/admin/stats", headers=admin)
        assert resp.json() == {"totalUsers": 3, "totalDrivers": 1, "totalRides": 2, "totalRevenue": 200.0}


@pytest.mark.asyncio
class TestMessages:
    async def test_driver_message_reaches_admin(self, client, make_user):
        driver_user, driver = await make_user("driver")
        _, admin = await make_user("admin")

        resp = await client.post("/driver/messages", headers=driver, json={"message": "Flat tyre"})
        assert resp.status_code == 201
        assert resp.json()["message"]["subject"] == "Driver message"

        messages = (await client.get("/admin/messages", headers=admin)).json()["messages"]
        assert [(m["user_id"], m["message"]) for m in messages] == [(driver_user["id"], "Flat tyre")]

    async def test_message_required(self, client, make_user):
        _, driver = await make_user("driver")
        resp = await client.post("/driver/messages", headers=driver, json={"subject": "Hi"})
        assert resp.status_code == 400
