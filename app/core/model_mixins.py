"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    VersionedMixin: Integer version column for optimistic locking

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin

    class Payment(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
        ...

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
"""

from __future__ import annotations

import uuid

from django.db import models
from django.db.models import F


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    Non-guessable ids matter here: payment and order ids appear in
    owner-facing URLs (``/payments/<id>/status/``).
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class VersionedMixin(models.Model):
    """
    Optimistic locking support.

    ``version`` is incremented atomically on every ``save()`` of an
    existing row. Writers that must not overwrite a concurrent change
    compare against the version they read with ``compare_and_swap``.
    """

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        is_update = self.pk and not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    def compare_and_swap(self, expected_version: int, **fields) -> bool:
        """
        Persist ``fields`` only if the row still has ``expected_version``.

        Returns:
            True if this writer won, False if another writer committed first.
            On success the instance is updated in memory, version included.
        """
        updated = type(self).objects.filter(pk=self.pk, version=expected_version).update(
            version=F("version") + 1,
            **fields,
        )
        if not updated:
            return False
        for name, value in fields.items():
            setattr(self, name, value)
        self.version = expected_version + 1
        return True
