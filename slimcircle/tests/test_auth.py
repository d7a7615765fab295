import unittest

import testing_utils
from slimcircle import auth
from slimcircle.errors import Forbidden, Unauthorized
from slimcircle.identity_provider import InMemoryIdentityProvider
from shared.types import UserRole


class RequireAdminTests(unittest.TestCase):
    def setUp(self):
        self.provider = InMemoryIdentityProvider()

    def test_role_from_claims(self):
        caller = auth.require_admin(
            auth.Caller(user_id="admin_1", role=UserRole.SUPER_ADMIN), self.provider
        )
        self.assertEqual(caller.role, UserRole.SUPER_ADMIN)

    def test_falls_back_to_directory_role(self):
        self.provider.add_user(testing_utils.make_user("admin_1", role="admin"))
        caller = auth.require_admin(auth.Caller(user_id="admin_1"), self.provider)
        self.assertEqual(caller.role, UserRole.ADMIN)

    def test_rejects_non_admins(self):
        self.provider.add_user(testing_utils.make_user("coach_1", role="coach"))
        for caller in (
            auth.Caller(user_id="coach_1"),
            auth.Caller(user_id="user_1", role=UserRole.EDITOR),
            auth.Caller(user_id="unknown"),
        ):
            with self.subTest(caller=caller):
                with self.assertRaises(Forbidden):
                    auth.require_admin(caller, self.provider)

    def test_current_user_requires_caller(self):
        with self.assertRaises(Unauthorized):
            auth.get_current_user(None)


if __name__ == "__main__":
    unittest.main()
