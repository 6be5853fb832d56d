"""
Tests for the User model helpers.
"""

from authentication.models import User
from authentication.tests.factories import UserFactory


class TestUserNames:
    def test_full_name_joins_first_and_last(self, db):
        user = UserFactory(first_name="Grace", last_name="Hopper")

        assert user.get_full_name() == "Grace Hopper"

    def test_full_name_falls_back_to_email(self, db):
        user = UserFactory(email="nameless@example.com", first_name="", last_name="")

        assert user.get_full_name() == "nameless@example.com"

    def test_short_name_falls_back_to_email_local_part(self, db):
        user = UserFactory(email="nameless@example.com", first_name="")

        assert user.get_short_name() == "nameless"


class TestUserType:
    def test_business_user_is_not_platform_admin(self, db):
        user = UserFactory(user_type=User.UserType.BUSINESS)

        assert user.is_business is True
        assert user.is_platform_admin is False

    def test_admin_user_is_platform_admin(self, db):
        user = UserFactory(user_type=User.UserType.ADMIN)

        assert user.is_platform_admin is True
        assert user.is_business is False

    def test_str_is_email(self, db):
        user = UserFactory(email="str@example.com")

        assert str(user) == "str@example.com"
