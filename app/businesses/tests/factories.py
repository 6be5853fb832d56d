"""
Factory Boy factories for business listings.

Usage:
    from businesses.tests.factories import BusinessFactory

    draft = BusinessFactory(owner=owner)
    paid = BusinessFactory(payment_status=BusinessPaymentStatus.PAID)
"""

import factory

from authentication.tests.factories import BusinessUserFactory
from businesses.models import Business, BusinessPaymentStatus, BusinessStatus


class BusinessFactory(factory.django.DjangoModelFactory):
    """
    Factory for Business model.

    Defaults to an unpaid, unapproved draft listing.
    """

    class Meta:
        model = Business

    owner = factory.SubFactory(BusinessUserFactory)
    name = factory.Sequence(lambda n: f"Business {n}")
    tagline = factory.Faker("catch_phrase")
    description = factory.Faker("paragraph")
    location = factory.Faker("city")
    payment_status = BusinessPaymentStatus.PENDING
    status = BusinessStatus.DRAFT
    is_approved = False
