"""
BuildMarket Backend: API Integration Tests
===========================================

What:  End-to-end flows through the FastAPI app on in-memory SQLite.
How:   HTTPX AsyncClient over ASGITransport; each test gets a fresh schema.

What we test:
    ✅ Listing lifecycle: create → pending (hidden) → approve → visible
    ✅ Compatibility on detail, list and sort=compatibility
    ✅ Purchase rules and dashboards
    ✅ Buyer reviews and the leaderboard
    ✅ Admin gate, flags, error envelope
"""

import pytest

# Matches admin_api_key in the test_settings fixture
ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}


async def create_active_build(client, payload, **overrides):
    response = await client.post("/api/builds", json={**payload, **overrides})
    assert response.status_code == 201, response.text
    build_id = response.json()["id"]
    approved = await client.post(f"/api/admin/builds/{build_id}/approve", headers=ADMIN_HEADERS)
    assert approved.status_code == 200, approved.text
    return approved.json()


async def save_playstyle(client, buyer_id, vector):
    response = await client.put(f"/api/profiles/{buyer_id}/playstyle", json={"vector": vector})
    assert response.status_code == 200, response.text
    return response.json()


class TestHealthAndCatalog:

    @pytest.mark.asyncio
    async def test_health_reports_database(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_dimension_catalog(self, test_client):
        response = await test_client.get("/api/playstyle/dimensions")

        assert response.status_code == 200
        dimensions = response.json()["dimensions"]
        assert len(dimensions) == 8
        assert dimensions[0]["key"] == "shootVsDrive"
        assert dimensions[7]["key"] == "consistencyVsHighRisk"

    @pytest.mark.asyncio
    async def test_ad_hoc_scoring(self, test_client):
        response = await test_client.post(
            "/api/compatibility",
            json={"buyer_vector": [5] * 8, "build_vector": [5] * 8, "shooting": 100},
        )

        assert response.status_code == 200
        assert response.json() == {
            "score": 100,
            "label": "Perfect Match",
            "strengths": [
                "Fits your Shooting style",
                "Fits your Solo play",
                "Fits your Defense focus",
            ],
            "weaknesses": [],
            "predictedWinBoost": 30,
        }

    @pytest.mark.asyncio
    async def test_ad_hoc_scoring_short_vector_falls_back(self, test_client):
        response = await test_client.post(
            "/api/compatibility", json={"buyer_vector": [5] * 7, "build_vector": [5] * 8}
        )

        assert response.status_code == 200
        assert response.json()["score"] == 70
        assert response.json()["predictedWinBoost"] == 5

    @pytest.mark.asyncio
    async def test_ad_hoc_scoring_rejects_out_of_range_component(self, test_client):
        response = await test_client.post(
            "/api/compatibility", json={"buyer_vector": [11] + [5] * 7, "build_vector": [5] * 8}
        )
        assert response.status_code == 422


class TestProfiles:

    @pytest.mark.asyncio
    async def test_save_and_read_playstyle(self, test_client):
        saved = await save_playstyle(test_client, "buyer-1", [7, 3, 5, 6, 4, 2, 8, 5])
        assert saved["playstyle_labels"]["pacePreference"] == 8

        response = await test_client.get("/api/profiles/buyer-1")

        assert response.status_code == 200
        assert response.json()["playstyle_vector"] == [7, 3, 5, 6, 4, 2, 8, 5]

    @pytest.mark.asyncio
    async def test_wrong_length_vector_is_rejected(self, test_client):
        response = await test_client.put(
            "/api/profiles/buyer-1/playstyle", json={"vector": [5] * 7}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_profile_uses_error_envelope(self, test_client):
        response = await test_client.get(
            "/api/profiles/nobody", headers={"X-Request-ID": "req-1234"}
        )

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["request_id"] == "req-1234"
        assert response.headers["X-Request-ID"] == "req-1234"


class TestListingLifecycle:

    @pytest.mark.asyncio
    async def test_new_listing_is_hidden_until_approved(self, test_client, sample_build_payload):
        created = await test_client.post("/api/builds", json=sample_build_payload)
        assert created.status_code == 201
        body = created.json()
        assert body["status"] == "pending"
        assert "import_code" not in body

        build_id = body["id"]
        assert (await test_client.get(f"/api/builds/{build_id}")).status_code == 404
        assert (await test_client.get("/api/builds")).json()["total_count"] == 0

        queue = await test_client.get("/api/admin/builds", headers=ADMIN_HEADERS)
        assert [b["id"] for b in queue.json()] == [build_id]

        await test_client.post(f"/api/admin/builds/{build_id}/approve", headers=ADMIN_HEADERS)

        feed = await test_client.get("/api/builds")
        assert feed.headers["X-Total-Count"] == "1"
        assert feed.json()["builds"][0]["id"] == build_id

    @pytest.mark.asyncio
    async def test_overall_rating_from_attributes(self, test_client, sample_build_payload):
        attributes = {
            name: 80
            for name in (
                "speed", "acceleration", "vertical_leap", "strength", "stamina",
                "ball_handling", "pass_accuracy", "three_pointer", "mid_range",
                "layup", "dunk_power", "interior_defense", "perimeter_defense",
                "steal", "block", "offensive_rebound", "defensive_rebound",
            )
        }
        attributes["speed"] = 97

        response = await test_client.post(
            "/api/builds", json={**sample_build_payload, "attributes": attributes}
        )

        assert response.status_code == 201
        assert response.json()["overall_rating"] == 81

    @pytest.mark.asyncio
    async def test_price_below_minimum_is_rejected(self, test_client, sample_build_payload):
        response = await test_client.post(
            "/api/builds", json={**sample_build_payload, "price_cents": 50}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_approving_twice_is_a_conflict(self, test_client, sample_build_payload):
        build = await create_active_build(test_client, sample_build_payload)

        response = await test_client.post(
            f"/api/admin/builds/{build['id']}/approve", headers=ADMIN_HEADERS
        )

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_detail_counts_views(self, test_client, sample_build_payload):
        build = await create_active_build(test_client, sample_build_payload)

        await test_client.get(f"/api/builds/{build['id']}")
        response = await test_client.get(f"/api/builds/{build['id']}")

        assert response.json()["view_count"] == 2

    @pytest.mark.asyncio
    async def test_delete_requires_the_seller(self, test_client, sample_build_payload):
        build = await create_active_build(test_client, sample_build_payload)
        url = f"/api/builds/{build['id']}"

        assert (await test_client.delete(url)).status_code == 422
        assert (
            await test_client.delete(url, headers={"X-Seller-ID": "someone-else"})
        ).status_code == 403
        assert (
            await test_client.delete(url, headers={"X-Seller-ID": "seller-1"})
        ).status_code == 204
        assert (await test_client.get(url)).status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_build_is_not_found(self, test_client):
        response = await test_client.get("/api/builds/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404


class TestCompatibilityInListings:

    @pytest.mark.asyncio
    async def test_detail_includes_compatibility_for_buyer(
        self, test_client, sample_build_payload
    ):
        build = await create_active_build(test_client, sample_build_payload)
        await save_playstyle(test_client, "buyer-1", sample_build_payload["build_vector"])

        response = await test_client.get(f"/api/builds/{build['id']}?buyer_id=buyer-1")

        compatibility = response.json()["compatibility"]
        assert compatibility["score"] == 100
        assert compatibility["label"] == "Perfect Match"
        # shooting 62: 25 + 12 * 0.3
        assert compatibility["predictedWinBoost"] == 29

    @pytest.mark.asyncio
    async def test_buyer_without_profile_gets_neutral_score(
        self, test_client, sample_build_payload
    ):
        build = await create_active_build(test_client, sample_build_payload)

        response = await test_client.get(
            f"/api/builds/{build['id']}/compatibility?buyer_id=new-buyer"
        )

        assert response.status_code == 200
        assert response.json()["score"] == 70

    @pytest.mark.asyncio
    async def test_sort_by_compatibility(self, test_client, sample_build_payload):
        exact = await create_active_build(
            test_client, sample_build_payload, title="Exact", build_vector=[5] * 8
        )
        distant = await create_active_build(
            test_client, sample_build_payload, title="Distant", build_vector=[1] * 8
        )
        unrated = await create_active_build(
            test_client, sample_build_payload, title="Unrated", build_vector=None
        )
        await save_playstyle(test_client, "buyer-1", [5] * 8)

        newest = await test_client.get("/api/builds")
        ranked = await test_client.get("/api/builds?sort=compatibility&buyer_id=buyer-1")

        assert [b["id"] for b in newest.json()["builds"]] == [
            unrated["id"], distant["id"], exact["id"],
        ]
        assert [b["id"] for b in ranked.json()["builds"]] == [
            exact["id"], unrated["id"], distant["id"],
        ]
        assert [b["compatibility"]["score"] for b in ranked.json()["builds"]] == [100, 70, 56]

    @pytest.mark.asyncio
    async def test_filters_and_pagination(self, test_client, sample_build_payload):
        await create_active_build(test_client, sample_build_payload, price_cents=999)
        await create_active_build(test_client, sample_build_payload, price_cents=2999)
        await create_active_build(
            test_client, sample_build_payload, price_cents=1999, game_type="football"
        )

        cheap = await test_client.get("/api/builds?max_price_cents=2000&game_type=basketball")
        page = await test_client.get("/api/builds?sort=price_asc&limit=2")

        assert [b["price_cents"] for b in cheap.json()["builds"]] == [999]
        assert [b["price_cents"] for b in page.json()["builds"]] == [999, 1999]
        assert page.json()["has_more"] is True


class TestPurchases:

    @pytest.mark.asyncio
    async def test_purchase_flow(self, test_client, sample_build_payload):
        build = await create_active_build(test_client, sample_build_payload)
        url = f"/api/builds/{build['id']}/purchase"

        bought = await test_client.post(url, json={"buyer_id": "buyer-1", "buyer_name": "Hooper"})
        again = await test_client.post(url, json={"buyer_id": "buyer-2", "buyer_name": "Late"})

        assert bought.status_code == 201
        assert bought.json()["import_code"] == "2K-IMPORT-ABCD-1234"
        assert again.status_code == 409

        detail = await test_client.get(f"/api/builds/{build['id']}")
        assert detail.json()["status"] == "sold"
        assert (await test_client.get("/api/builds")).json()["total_count"] == 0

        purchases = (await test_client.get("/api/users/buyer-1/purchases")).json()
        assert [p["import_code"] for p in purchases] == ["2K-IMPORT-ABCD-1234"]

        earnings = (await test_client.get("/api/users/seller-1/earnings")).json()
        assert earnings == {"seller_id": "seller-1", "sales_count": 1, "total_cents": 1499}

        sold_delete = await test_client.delete(
            f"/api/builds/{build['id']}", headers={"X-Seller-ID": "seller-1"}
        )
        assert sold_delete.status_code == 409

    @pytest.mark.asyncio
    async def test_seller_cannot_buy_own_build(self, test_client, sample_build_payload):
        build = await create_active_build(test_client, sample_build_payload)

        response = await test_client.post(
            f"/api/builds/{build['id']}/purchase",
            json={"buyer_id": "seller-1", "buyer_name": "Me"},
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_seller_sees_all_own_listings(self, test_client, sample_build_payload):
        await create_active_build(test_client, sample_build_payload)
        await test_client.post("/api/builds", json=sample_build_payload)

        listings = (await test_client.get("/api/users/seller-1/builds")).json()

        assert sorted(b["status"] for b in listings) == ["active", "pending"]


class TestReviews:

    @pytest.mark.asyncio
    async def test_buyer_reviews_once(self, test_client, sample_build_payload):
        build = await create_active_build(test_client, sample_build_payload)
        await test_client.post(
            f"/api/builds/{build['id']}/purchase",
            json={"buyer_id": "buyer-1", "buyer_name": "Hooper"},
        )
        url = f"/api/builds/{build['id']}/reviews"

        first = await test_client.post(url, json={"buyer_id": "buyer-1", "rating": 4, "comment": "Fast"})
        second = await test_client.post(url, json={"buyer_id": "buyer-1", "rating": 1})

        assert first.status_code == 201, first.text
        assert first.json()["rating"] == 4
        assert second.status_code == 409
        assert second.json()["error"] == "conflict"

        detail = (await test_client.get(f"/api/builds/{build['id']}")).json()
        assert detail["review_count"] == 1
        assert detail["avg_rating"] == 4.0
        assert [r["comment"] for r in detail["reviews"]] == ["Fast"]

        listed = (await test_client.get(url)).json()
        assert [r["buyer_id"] for r in listed] == ["buyer-1"]

    @pytest.mark.asyncio
    async def test_non_buyer_cannot_review(self, test_client, sample_build_payload):
        build = await create_active_build(test_client, sample_build_payload)

        response = await test_client.post(
            f"/api/builds/{build['id']}/reviews", json={"buyer_id": "lurker", "rating": 5}
        )

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_rating_above_five_is_rejected(self, test_client, sample_build_payload):
        build = await create_active_build(test_client, sample_build_payload)

        response = await test_client.post(
            f"/api/builds/{build['id']}/reviews", json={"buyer_id": "buyer-1", "rating": 6}
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unreviewed_detail_has_no_average(self, test_client, sample_build_payload):
        build = await create_active_build(test_client, sample_build_payload)

        detail = (await test_client.get(f"/api/builds/{build['id']}")).json()

        assert detail["avg_rating"] is None
        assert detail["review_count"] == 0
        assert detail["reviews"] == []

    @pytest.mark.asyncio
    async def test_reviews_of_unknown_build_are_not_found(self, test_client):
        response = await test_client.get(
            "/api/builds/00000000-0000-0000-0000-000000000000/reviews"
        )

        assert response.status_code == 404


class TestLeaderboard:

    @pytest.mark.asyncio
    async def test_sold_and_reviewed_build_ranks_first(self, test_client, sample_build_payload):
        browsed = await create_active_build(test_client, sample_build_payload, title="Browsed")
        sold = await create_active_build(test_client, sample_build_payload, title="Sold")
        await test_client.post("/api/builds", json={**sample_build_payload, "title": "Pending"})
        for _ in range(3):
            await test_client.get(f"/api/builds/{browsed['id']}")
        await test_client.post(
            f"/api/builds/{sold['id']}/purchase",
            json={"buyer_id": "buyer-1", "buyer_name": "Hooper"},
        )
        await test_client.post(
            f"/api/builds/{sold['id']}/reviews", json={"buyer_id": "buyer-1", "rating": 5}
        )

        response = await test_client.get("/api/leaderboard")

        assert response.status_code == 200
        entries = response.json()
        assert [e["title"] for e in entries] == ["Sold", "Browsed"]
        assert [e["rank"] for e in entries] == [1, 2]
        assert entries[0]["sales_count"] == 1
        assert entries[0]["avg_rating"] == 5.0
        assert entries[1]["sales_count"] == 0
        assert entries[1]["avg_rating"] is None
        assert entries[1]["view_count"] == 3

    @pytest.mark.asyncio
    async def test_game_type_filter(self, test_client, sample_build_payload):
        await create_active_build(test_client, sample_build_payload, title="Hooper")
        await create_active_build(
            test_client, sample_build_payload, title="Sniper", game_type="hockey", position="RW"
        )

        entries = (await test_client.get("/api/leaderboard", params={"game_type": "hockey"})).json()

        assert [e["title"] for e in entries] == ["Sniper"]
        assert entries[0]["game_type"] == "hockey"

    @pytest.mark.asyncio
    async def test_unknown_game_type_is_rejected(self, test_client):
        response = await test_client.get("/api/leaderboard", params={"game_type": "curling"})

        assert response.status_code == 422


class TestAdmin:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"X-Admin-Key": "wrong"}])
    async def test_admin_routes_require_key(self, test_client, headers):
        response = await test_client.get("/api/admin/builds", headers=headers)

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_flag_and_resolve(self, test_client, sample_build_payload):
        build = await create_active_build(test_client, sample_build_payload)

        flagged = await test_client.post(
            f"/api/builds/{build['id']}/flags",
            json={"reporter_id": "buyer-9", "reason": "Import code is fake"},
        )
        assert flagged.status_code == 201

        open_flags = (await test_client.get("/api/admin/flags", headers=ADMIN_HEADERS)).json()
        assert [f["id"] for f in open_flags] == [flagged.json()["id"]]

        resolved = await test_client.post(
            f"/api/admin/flags/{flagged.json()['id']}/resolve", headers=ADMIN_HEADERS
        )
        assert resolved.json()["resolved"] is True
        assert (await test_client.get("/api/admin/flags", headers=ADMIN_HEADERS)).json() == []

    @pytest.mark.asyncio
    async def test_featured_builds_lead_the_feed(self, test_client, sample_build_payload):
        first = await create_active_build(test_client, sample_build_payload, title="First")
        await create_active_build(test_client, sample_build_payload, title="Second")

        featured = await test_client.post(
            f"/api/admin/builds/{first['id']}/feature",
            json={"featured": True},
            headers=ADMIN_HEADERS,
        )
        feed = (await test_client.get("/api/builds")).json()["builds"]

        assert featured.json()["featured"] is True
        assert feed[0]["id"] == first["id"]
