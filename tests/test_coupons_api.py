"""API tests for coupon upload, claiming rules, stats and admin user management."""

import unittest
from datetime import timedelta
from typing import Any

from support import API, ApiTestCase

from couponx.models import Coupon
from couponx.models.base import ensure_utc, utcnow


def _coupon_body(**overrides: Any) -> dict[str, Any]:
    body = {
        "title": "Half off pizza",
        "description": "50% off any large pizza on weekdays.",
        "code": " pizza50 ",
        "discountType": "percentage",
        "discountValue": 50,
        "category": "Food",
        "storeName": "Slice House",
        "expiresAt": (utcnow() + timedelta(days=7)).isoformat(),
    }
    body.update(overrides)
    return body


class CouponTestCase(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        owner = self.register("owner")
        self.owner_id = owner["user"]["id"]
        self.owner = self.bearer(owner["tokens"]["accessToken"])
        claimer = self.register("claimer")
        self.claimer_id = claimer["user"]["id"]
        self.claimer = self.bearer(claimer["tokens"]["accessToken"])

    def upload(self, **overrides: Any) -> dict[str, Any]:
        resp = self.client.post(f"{API}/coupons", json=_coupon_body(**overrides), headers=self.owner)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["data"]

    def claim(self, coupon_id: int, headers: dict[str, str] | None = None):
        return self.client.post(f"{API}/coupons/{coupon_id}/claim", headers=headers or self.claimer)


class TestUpload(CouponTestCase):
    def test_upload_awards_points(self) -> None:
        data = self.upload()
        self.assertEqual(data["pointsEarned"], 5)
        self.assertEqual(data["totalPoints"], 105)
        self.assertEqual(data["coupon"]["code"], "PIZZA50")
        self.assertEqual(data["coupon"]["category"], "food")

    def test_upload_requires_auth(self) -> None:
        resp = self.client.post(f"{API}/coupons", json=_coupon_body())
        self.assertEqual(resp.json()["error"], "MISSING_TOKEN")

    def test_past_expiry_and_unknown_category_are_rejected(self) -> None:
        resp = self.client.post(
            f"{API}/coupons",
            json=_coupon_body(expiresAt=(utcnow() - timedelta(days=1)).isoformat(), category="cars"),
            headers=self.owner,
        )
        self.assertEqual(resp.status_code, 400)
        fields = {e["field"] for e in resp.json()["errors"]}
        self.assertIn("category", fields)
        self.assertTrue(fields & {"expiresAt", "expires_at"})
        self.assertEqual(resp.json()["error"], "VALIDATION_ERROR")

    def test_code_hidden_from_other_users_until_claimed(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        anonymous = self.client.get(f"{API}/coupons/{coupon_id}").json()["data"]["coupon"]
        self.assertIsNone(anonymous["code"])
        before = self.client.get(f"{API}/coupons/{coupon_id}", headers=self.claimer).json()["data"]["coupon"]
        self.assertIsNone(before["code"])

        self.assertEqual(self.claim(coupon_id).status_code, 200)
        after = self.client.get(f"{API}/coupons/{coupon_id}", headers=self.claimer).json()["data"]["coupon"]
        self.assertEqual(after["code"], "PIZZA50")

    def test_list_filters_by_category_and_search(self) -> None:
        self.upload()
        self.upload(title="Cheap jeans", description="Ten dollars off denim.", category="clothing", code="JEANS10")
        resp = self.client.get(f"{API}/coupons", params={"category": "clothing"})
        coupons = resp.json()["data"]["coupons"]
        self.assertEqual([c["title"] for c in coupons], ["Cheap jeans"])

        resp = self.client.get(f"{API}/coupons", params={"search": "pizza"})
        data = resp.json()["data"]
        self.assertEqual(len(data["coupons"]), 1)
        self.assertEqual(data["pagination"]["totalItems"], 1)


class TestClaim(CouponTestCase):
    def test_claim_spends_points(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        resp = self.claim(coupon_id)
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(data["pointsSpent"], 10)
        self.assertEqual(data["remainingPoints"], 90)
        self.assertEqual(data["dailyClaimsRemaining"], 2)
        self.assertEqual(data["coupon"]["claimCount"], 1)

    def test_cannot_claim_own_coupon(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        resp = self.claim(coupon_id, self.owner)
        self.assertEqual(resp.json()["error"], "CANNOT_CLAIM_OWN")

    def test_cannot_claim_twice(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        self.assertEqual(self.claim(coupon_id).status_code, 200)
        resp = self.claim(coupon_id)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "ALREADY_CLAIMED")

    def test_expired_coupon(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        db = self.db()
        coupon = db.get(Coupon, coupon_id)
        coupon.expires_at = utcnow() - timedelta(minutes=1)
        db.commit()
        resp = self.claim(coupon_id)
        self.assertEqual(resp.json()["error"], "COUPON_EXPIRED")

    def test_unknown_coupon(self) -> None:
        resp = self.claim(12345)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "COUPON_NOT_FOUND")

    def test_daily_limit_for_free_users(self) -> None:
        ids = [self.upload(code=f"CODE{i}")["coupon"]["id"] for i in range(4)]
        for coupon_id in ids[:3]:
            self.assertEqual(self.claim(coupon_id).status_code, 200)
        resp = self.claim(ids[3])
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"], "DAILY_LIMIT_REACHED")

    def test_premium_users_have_no_daily_limit(self) -> None:
        self.set_user(self.claimer_id, role="premium")
        ids = [self.upload(code=f"CODE{i}")["coupon"]["id"] for i in range(4)]
        for coupon_id in ids:
            resp = self.claim(coupon_id)
            self.assertEqual(resp.status_code, 200)
            self.assertIsNone(resp.json()["data"]["dailyClaimsRemaining"])

    def test_insufficient_points(self) -> None:
        self.set_user(self.claimer_id, points=5)
        coupon_id = self.upload()["coupon"]["id"]
        resp = self.claim(coupon_id)
        self.assertEqual(resp.json()["error"], "INSUFFICIENT_POINTS")

    def test_only_owner_deletes(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        resp = self.client.delete(f"{API}/coupons/{coupon_id}", headers=self.claimer)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"], "NOT_OWNER")
        self.assertEqual(self.client.delete(f"{API}/coupons/{coupon_id}", headers=self.owner).status_code, 200)
        self.assertEqual(self.client.get(f"{API}/coupons/{coupon_id}").status_code, 404)


class TestUpdate(CouponTestCase):
    def test_owner_updates_editable_fields_only(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        new_expiry = utcnow() + timedelta(days=30)
        resp = self.client.put(
            f"{API}/coupons/{coupon_id}",
            json={"title": "Pizza at half price", "expiresAt": new_expiry.isoformat(), "code": "STOLEN"},
            headers=self.owner,
        )
        self.assertEqual(resp.status_code, 200)
        coupon = resp.json()["data"]["coupon"]
        self.assertEqual(coupon["title"], "Pizza at half price")
        self.assertEqual(coupon["description"], "50% off any large pizza on weekdays.")
        self.assertEqual(coupon["code"], "PIZZA50")

        row = self.db().get(Coupon, coupon_id)
        self.assertEqual(row.code, "PIZZA50")
        self.assertEqual(ensure_utc(row.expires_at).date(), new_expiry.date())

    def test_other_user_is_not_owner(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        resp = self.client.put(f"{API}/coupons/{coupon_id}", json={"title": "Mine now"}, headers=self.claimer)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"], "NOT_OWNER")

    def test_admin_may_update_any_coupon(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        self.set_user(self.claimer_id, role="admin")
        resp = self.client.put(
            f"{API}/coupons/{coupon_id}",
            json={"description": "Edited by moderation."},
            headers=self.claimer,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["coupon"]["description"], "Edited by moderation.")

    def test_past_expiry_is_rejected(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        resp = self.client.put(
            f"{API}/coupons/{coupon_id}",
            json={"expiresAt": (utcnow() - timedelta(days=1)).isoformat()},
            headers=self.owner,
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "VALIDATION_ERROR")

    def test_unknown_coupon(self) -> None:
        resp = self.client.put(f"{API}/coupons/999", json={"title": "Nothing here"}, headers=self.owner)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "COUPON_NOT_FOUND")


class TestUserCoupons(CouponTestCase):
    def test_my_coupons_lists_own_uploads_with_codes(self) -> None:
        first = self.upload(code="FIRST")["coupon"]["id"]
        second = self.upload(code="SECOND", category="books")["coupon"]["id"]
        db = self.db()
        db.get(Coupon, first).expires_at = utcnow() - timedelta(minutes=1)
        db.commit()

        resp = self.client.get(f"{API}/users/my-coupons", headers=self.owner)
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual([c["id"] for c in data["coupons"]], [second, first])
        self.assertEqual([c["code"] for c in data["coupons"]], ["SECOND", "FIRST"])
        self.assertEqual(data["pagination"]["totalItems"], 2)

        expired = self.client.get(f"{API}/users/my-coupons", params={"status": "expired"}, headers=self.owner)
        self.assertEqual([c["id"] for c in expired.json()["data"]["coupons"]], [first])
        books = self.client.get(f"{API}/users/my-coupons", params={"category": "books"}, headers=self.owner)
        self.assertEqual([c["id"] for c in books.json()["data"]["coupons"]], [second])

        others = self.client.get(f"{API}/users/my-coupons", headers=self.claimer).json()["data"]
        self.assertEqual(others["coupons"], [])

    def test_claimed_coupons_reveal_codes_and_claim_time(self) -> None:
        first = self.upload(code="FIRST")["coupon"]["id"]
        second = self.upload(code="SECOND")["coupon"]["id"]
        self.upload(code="UNCLAIMED")
        self.assertEqual(self.claim(first).status_code, 200)
        self.assertEqual(self.claim(second).status_code, 200)

        resp = self.client.get(f"{API}/users/claimed-coupons", headers=self.claimer)
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual({c["code"] for c in data["coupons"]}, {"FIRST", "SECOND"})
        self.assertTrue(all(c["claimedAt"] for c in data["coupons"]))
        self.assertEqual(data["pagination"]["totalItems"], 2)

        page = self.client.get(f"{API}/users/claimed-coupons", params={"limit": 1}, headers=self.claimer)
        self.assertEqual(len(page.json()["data"]["coupons"]), 1)
        self.assertEqual(page.json()["data"]["pagination"]["totalPages"], 2)

    def test_lists_require_auth(self) -> None:
        for path in ("my-coupons", "claimed-coupons"):
            resp = self.client.get(f"{API}/users/{path}")
            self.assertEqual(resp.status_code, 401)
            self.assertEqual(resp.json()["error"], "MISSING_TOKEN")


class TestClaimInsights(CouponTestCase):
    """GET /coupons/{id}/claims is a premium feature for the uploader."""

    def test_free_uploader_needs_premium(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        resp = self.client.get(f"{API}/coupons/{coupon_id}/claims", headers=self.owner)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"], "PREMIUM_REQUIRED")

    def test_premium_uploader_sees_claimers(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        self.claim(coupon_id)
        self.set_user(self.owner_id, role="premium")
        resp = self.client.get(f"{API}/coupons/{coupon_id}/claims", headers=self.owner)
        self.assertEqual(resp.status_code, 200)
        claims = resp.json()["data"]["claims"]
        self.assertEqual([(c["userId"], c["username"]) for c in claims], [(self.claimer_id, "claimer")])
        self.assertTrue(claims[0]["claimedAt"])

    def test_premium_user_cannot_see_claims_on_others_coupons(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        self.set_user(self.claimer_id, role="premium")
        resp = self.client.get(f"{API}/coupons/{coupon_id}/claims", headers=self.claimer)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"], "NOT_OWNER")


class TestUserStats(CouponTestCase):
    def test_stats_and_leaderboard(self) -> None:
        coupon_id = self.upload()["coupon"]["id"]
        self.claim(coupon_id)

        stats = self.client.get(f"{API}/users/me/stats", headers=self.claimer).json()["data"]["stats"]
        self.assertEqual(stats["points"], 90)
        self.assertEqual(stats["pointsSpent"], 10)
        self.assertEqual(stats["couponsClaimed"], 1)
        self.assertEqual(stats["claimsToday"], 1)
        self.assertEqual(stats["dailyClaimsRemaining"], 2)

        board = self.client.get(f"{API}/users/leaderboard", headers=self.claimer).json()["data"]["leaderboard"]
        self.assertEqual([e["username"] for e in board], ["owner", "claimer"])
        self.assertEqual(board[0]["rank"], 1)

    def test_delete_account_requires_password(self) -> None:
        wrong = self.client.request(
            "DELETE", f"{API}/users/me", json={"password": "Wr0ngpass"}, headers=self.claimer
        )
        self.assertEqual(wrong.json()["error"], "INVALID_PASSWORD")
        ok = self.client.request(
            "DELETE", f"{API}/users/me", json={"password": "Passw0rd"}, headers=self.claimer
        )
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(self.client.get(f"{API}/auth/profile", headers=self.claimer).status_code, 401)
        # The email is free again.
        self.register("claimer")


class TestAdmin(CouponTestCase):
    def test_non_admin_is_forbidden(self) -> None:
        resp = self.client.get(f"{API}/admin/users", headers=self.claimer)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"], "INSUFFICIENT_PERMISSIONS")

    def test_premium_is_not_admin(self) -> None:
        self.set_user(self.claimer_id, role="premium")
        resp = self.client.get(f"{API}/admin/users", headers=self.claimer)
        self.assertEqual(resp.status_code, 403)

    def test_admin_lists_and_deactivates(self) -> None:
        self.set_user(self.owner_id, role="admin")
        resp = self.client.get(f"{API}/admin/users", params={"search": "claim"}, headers=self.owner)
        self.assertEqual(resp.status_code, 200)
        users = resp.json()["data"]["users"]
        self.assertEqual([u["username"] for u in users], ["claimer"])

        resp = self.client.patch(
            f"{API}/admin/users/{self.claimer_id}",
            json={"isActive": False, "reason": "spam"},
            headers=self.owner,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["data"]["user"]["isActive"])
        self.assertEqual(self.client.get(f"{API}/auth/profile", headers=self.claimer).status_code, 401)

    def test_update_unknown_user(self) -> None:
        self.set_user(self.owner_id, role="admin")
        resp = self.client.patch(f"{API}/admin/users/999", json={"role": "premium"}, headers=self.owner)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "USER_NOT_FOUND")


if __name__ == "__main__":
    unittest.main()
