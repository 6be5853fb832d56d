"""
Factory Boy factories for authentication models.

Usage:
    from authentication.tests.factories import UserFactory

    customer = UserFactory()
    owner = BusinessUserFactory()
    admin = AdminUserFactory()
"""

import factory

from authentication.models import User


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User model.

    Creates active customers by default.

    Examples:
        user = UserFactory(first_name="Ada", last_name="Lovelace")
        staff = UserFactory(is_staff=True)
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")
    user_type = User.UserType.CUSTOMER
    is_active = True
    is_staff = False

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to use UserManager.create_user()."""
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )


class BusinessUserFactory(UserFactory):
    """Business owner account."""

    email = factory.Sequence(lambda n: f"owner{n}@example.com")
    user_type = User.UserType.BUSINESS


class AdminUserFactory(UserFactory):
    """Platform admin (moderator) account."""

    email = factory.Sequence(lambda n: f"moderator{n}@example.com")
    user_type = User.UserType.ADMIN
