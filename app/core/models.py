"""
Abstract timestamped base model shared by plans and payments.

Combine with core.model_mixins.UUIDPrimaryKeyMixin, mixin first:

    class ServicesPlan(UUIDPrimaryKeyMixin, BaseModel):
        title = models.CharField(max_length=255)
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """created_at / updated_at on every row; newest first unless Meta overrides it."""

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"
