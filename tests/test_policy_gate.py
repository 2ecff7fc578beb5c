"""Unit tests for couponx.policy.can_access and the client ProtectedRoute gate."""

import unittest
from dataclasses import dataclass
from unittest.mock import MagicMock

from couponx.client.gate import GateState, ProtectedRoute
from couponx.policy import Role, can_access


@dataclass
class _User:
    role: str = "user"
    is_premium: bool = False
    is_active: bool = True


@dataclass
class _Auth:
    user: _User | None = None
    loading: bool = False


class TestCanAccess(unittest.TestCase):
    """Role matrix shared by the API and the client."""

    def test_no_user_is_always_denied(self) -> None:
        for role in Role:
            self.assertFalse(can_access(role, None))

    def test_user_role(self) -> None:
        self.assertTrue(can_access(Role.USER, _User()))
        self.assertTrue(can_access(None, _User()))
        self.assertFalse(can_access(Role.PREMIUM, _User()))
        self.assertFalse(can_access(Role.ADMIN, _User()))

    def test_premium_flag_or_admin_grants_premium(self) -> None:
        self.assertTrue(can_access("premium", _User(role="premium", is_premium=True)))
        self.assertTrue(can_access("premium", _User(role="user", is_premium=True)))
        self.assertTrue(can_access("premium", _User(role="admin")))

    def test_admin_is_exact(self) -> None:
        self.assertTrue(can_access("admin", _User(role="admin", is_premium=True)))
        self.assertFalse(can_access("admin", _User(role="premium", is_premium=True)))

    def test_inactive_user_is_denied(self) -> None:
        self.assertFalse(can_access(Role.USER, _User(is_active=False)))
        self.assertFalse(can_access(Role.ADMIN, _User(role="admin", is_active=False)))

    def test_unknown_role_raises(self) -> None:
        with self.assertRaises(ValueError):
            can_access("superuser", _User())


class TestProtectedRoute(unittest.TestCase):
    """Pages render only when authenticated with the required role."""

    def test_loading_renders_nothing_and_does_not_redirect(self) -> None:
        navigate = MagicMock()
        page = MagicMock(return_value="page")
        route = ProtectedRoute(navigate=navigate)
        self.assertIsNone(route.render(_Auth(loading=True), page))
        page.assert_not_called()
        navigate.assert_not_called()
        self.assertIs(route.evaluate(_Auth(loading=True)).state, GateState.LOADING)

    def test_unauthenticated_redirects_to_login(self) -> None:
        navigate = MagicMock()
        page = MagicMock()
        ProtectedRoute(navigate=navigate).render(_Auth(), page)
        page.assert_not_called()
        navigate.assert_called_once_with("/login")

    def test_custom_redirect(self) -> None:
        decision = ProtectedRoute(redirect_to="/signin").evaluate(_Auth())
        self.assertIs(decision.state, GateState.UNAUTHENTICATED)
        self.assertEqual(decision.redirect_to, "/signin")

    def test_admin_page_never_renders_for_user_role(self) -> None:
        navigate = MagicMock()
        page = MagicMock(return_value="admin page")
        route = ProtectedRoute(required_role="admin", navigate=navigate)
        for user in (_User(), _User(role="premium", is_premium=True), _User(is_premium=True)):
            self.assertIsNone(route.render(_Auth(user=user), page))
        page.assert_not_called()
        navigate.assert_called_with("/dashboard")

    def test_premium_page_redirects_free_users(self) -> None:
        decision = ProtectedRoute(required_role=Role.PREMIUM).evaluate(_Auth(user=_User()))
        self.assertIs(decision.state, GateState.FORBIDDEN)
        self.assertEqual(decision.redirect_to, "/premium")

    def test_authorized_user_sees_page(self) -> None:
        page = MagicMock(return_value="admin page")
        result = ProtectedRoute(required_role="admin").render(_Auth(user=_User(role="admin")), page)
        self.assertEqual(result, "admin page")
        page.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
