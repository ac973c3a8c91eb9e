"""
Company settings service with caching.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from django.core.cache import cache
from django.core.exceptions import ValidationError as DjangoValidationError

from apps.common.types import ValidationError
from apps.settings.models import SINGLETON_PK, CompanySettings

logger = logging.getLogger(__name__)


class CompanySettingsService:
    """⚙️ Read and update the operator's company details"""

    CACHE_KEY: ClassVar[str] = "company_settings"
    CACHE_TIMEOUT: ClassVar[int] = 3600
    EDITABLE_FIELDS: ClassVar[frozenset[str]] = frozenset({"name", "address", "phone", "email"})

    @classmethod
    def get(cls) -> CompanySettings:
        cached = cache.get(cls.CACHE_KEY)
        if cached is not None:
            return cached  # type: ignore[no-any-return]

        settings_row, created = CompanySettings.objects.get_or_create(pk=SINGLETON_PK)
        if created:
            logger.info("⚙️ [Settings] Created default company settings")
        cache.set(cls.CACHE_KEY, settings_row, timeout=cls.CACHE_TIMEOUT)
        return settings_row

    @classmethod
    def update(cls, **fields: Any) -> CompanySettings:
        unknown = set(fields) - cls.EDITABLE_FIELDS
        if unknown:
            raise ValidationError(", ".join(sorted(unknown)), "not a company setting")

        settings_row, _created = CompanySettings.objects.get_or_create(pk=SINGLETON_PK)
        for field, value in fields.items():
            setattr(settings_row, field, value)
        try:
            settings_row.full_clean()
        except DjangoValidationError as e:
            field, messages = next(iter(e.message_dict.items()))
            raise ValidationError(field, "; ".join(messages)) from e
        settings_row.save()

        cls.clear_cache()
        return settings_row

    @classmethod
    def clear_cache(cls) -> None:
        cache.delete(cls.CACHE_KEY)
        logger.debug("🧹 [Settings] Cleared company settings cache")
