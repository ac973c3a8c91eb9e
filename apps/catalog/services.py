"""
Pack catalog and region services.

Packs are looked up by name because subscribers and subscription entries carry
the pack name, not a foreign key. Retired packs still resolve for pricing so
subscribers already on them keep billing.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Final

from django.db import IntegrityError, transaction

from apps.catalog.models import Pack, Region
from apps.common.types import ConflictError, NotFoundError, ValidationError
from apps.common.validators import log_security_event, validate_financial_amount
from apps.subscribers.models import Subscriber

logger = logging.getLogger(__name__)

DEFAULT_PACKS: Final[tuple[tuple[str, str, str], ...]] = (
    ("Basic SD", "150.00", "News, Entertainment, Regional"),
    ("Premium SD", "250.00", "Basic SD + Movies, Kids"),
    ("HD Basic", "350.00", "HD News, HD Entertainment"),
    ("HD Premium", "500.00", "All HD channels"),
    ("Sports Pack", "300.00", "Sports channels"),
    ("Entertainment Pack", "200.00", "Movies, Series, Music"),
    ("Family Pack", "400.00", "Kids, Entertainment, Regional"),
)

DEFAULT_REGIONS: Final[tuple[str, ...]] = ("North Zone", "South Zone", "East Zone", "West Zone")


def _clean_name(name: Any, field_name: str = "name") -> str:
    cleaned = str(name or "").strip()
    if not cleaned:
        raise ValidationError(field_name, "must not be blank")
    return cleaned


# ===============================================================================
# PACKS
# ===============================================================================


class PackCatalogService:
    """📺 Create, price and retire channel packs"""

    @staticmethod
    def get_pack(name: str, active_only: bool = False) -> Pack:
        queryset = Pack.objects.filter(name=name)
        if active_only:
            queryset = queryset.filter(is_active=True)
        pack = queryset.first()
        if pack is None:
            raise NotFoundError("Pack", name)
        return pack

    @staticmethod
    def get_pack_price(name: str) -> Decimal:
        """Current monthly price of a pack, retired or not"""
        return PackCatalogService.get_pack(name).price

    @staticmethod
    def list_packs(include_retired: bool = False) -> list[Pack]:
        queryset = Pack.objects.all()
        if not include_retired:
            queryset = queryset.filter(is_active=True)
        return list(queryset)

    @staticmethod
    def is_pack_in_use(name: str) -> bool:
        return Subscriber.objects.filter(current_pack=name).exists()

    @staticmethod
    def create_pack(name: str, price: Any, channels: str = "") -> Pack:
        name = _clean_name(name)
        amount = validate_financial_amount(price, "price", allow_zero=True)
        if Pack.objects.filter(name=name).exists():
            raise ConflictError(f"Pack '{name}' already exists")

        try:
            with transaction.atomic():
                pack = Pack(name=name, price=amount, channels=channels or "")
                pack.full_clean()
                pack.save()
        except IntegrityError as e:
            raise ConflictError(f"Pack '{name}' already exists") from e

        logger.info(f"📺 [Catalog] Created pack {name} at {amount}")
        return pack

    @staticmethod
    def update_pack(
        pack_id: int, *, name: str | None = None, price: Any = None, channels: str | None = None
    ) -> Pack:
        """
        Edit a pack. Subscription entries keep the price they were sold at;
        a rename is carried over to subscribers currently on the pack so that
        auto-billing keeps resolving it.
        """
        with transaction.atomic():
            pack = Pack.objects.select_for_update().filter(pk=pack_id).first()
            if pack is None:
                raise NotFoundError("Pack", pack_id)

            old_name = pack.name
            old_price = pack.price
            if name is not None:
                new_name = _clean_name(name)
                if new_name != old_name and Pack.objects.filter(name=new_name).exists():
                    raise ConflictError(f"Pack '{new_name}' already exists")
                pack.name = new_name
            if price is not None:
                pack.price = validate_financial_amount(price, "price", allow_zero=True)
            if channels is not None:
                pack.channels = channels
            pack.save()

            renamed = 0
            if pack.name != old_name:
                renamed = Subscriber.objects.filter(current_pack=old_name).update(current_pack=pack.name)

        if pack.price != old_price:
            log_security_event(
                event_type="pack_price_changed",
                details={"pack": pack.name, "old_price": str(old_price), "new_price": str(pack.price)},
            )
        if renamed:
            logger.info(f"📺 [Catalog] Renamed pack {old_name} -> {pack.name} on {renamed} subscriber(s)")
        return pack

    @staticmethod
    def retire_pack(pack_id: int) -> Pack:
        return PackCatalogService._set_active(pack_id, False)

    @staticmethod
    def reactivate_pack(pack_id: int) -> Pack:
        return PackCatalogService._set_active(pack_id, True)

    @staticmethod
    def _set_active(pack_id: int, active: bool) -> Pack:
        pack = Pack.objects.filter(pk=pack_id).first()
        if pack is None:
            raise NotFoundError("Pack", pack_id)
        pack.is_active = active
        pack.save(update_fields=["is_active", "updated_at"])
        logger.info(f"📺 [Catalog] Pack {pack.name} {'reactivated' if active else 'retired'}")
        return pack

    @staticmethod
    def delete_pack(pack_id: int) -> None:
        with transaction.atomic():
            pack = Pack.objects.select_for_update().filter(pk=pack_id).first()
            if pack is None:
                raise NotFoundError("Pack", pack_id)
            if PackCatalogService.is_pack_in_use(pack.name):
                raise ConflictError(f"Cannot delete pack '{pack.name}': it is assigned to subscribers")
            pack.delete()
        logger.info(f"🗑️ [Catalog] Deleted pack {pack.name}")

    @staticmethod
    def seed_defaults() -> int:
        """Install the default pack line-up when the catalog is empty"""
        if Pack.objects.exists():
            return 0
        Pack.objects.bulk_create(
            [Pack(name=name, price=Decimal(price), channels=channels) for name, price, channels in DEFAULT_PACKS]
        )
        return len(DEFAULT_PACKS)


# ===============================================================================
# REGIONS
# ===============================================================================


class RegionService:
    """Service areas"""

    @staticmethod
    def list_regions() -> list[Region]:
        return list(Region.objects.all())

    @staticmethod
    def is_region_in_use(name: str) -> bool:
        return Subscriber.objects.filter(region=name).exists()

    @staticmethod
    def create_region(name: str) -> Region:
        name = _clean_name(name)
        if Region.objects.filter(name=name).exists():
            raise ConflictError(f"Region '{name}' already exists")
        return Region.objects.create(name=name)

    @staticmethod
    def delete_region(region_id: int) -> None:
        region = Region.objects.filter(pk=region_id).first()
        if region is None:
            raise NotFoundError("Region", region_id)
        if RegionService.is_region_in_use(region.name):
            raise ConflictError(f"Cannot delete region '{region.name}': it is assigned to subscribers")
        region.delete()

    @staticmethod
    def seed_defaults() -> int:
        if Region.objects.exists():
            return 0
        Region.objects.bulk_create([Region(name=name) for name in DEFAULT_REGIONS])
        return len(DEFAULT_REGIONS)
