"""
Set-top box inventory service.

Boxes move available -> assigned -> available, can be flagged faulty from any
in-service state and repaired back into stock, and are decommissioned only
once nobody holds them.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db import transaction

from apps.common.types import ConflictError, NotFoundError, ValidationError
from apps.inventory.models import SetTopBox
from apps.subscribers.models import Subscriber

logger = logging.getLogger(__name__)


def _lock_stb(stb_id: Any) -> SetTopBox:
    stb = SetTopBox.objects.select_for_update().filter(pk=stb_id).first()
    if stb is None:
        raise NotFoundError("Set-top box", stb_id)
    return stb


class StbInventoryService:
    """📦 Set-top box stock"""

    @staticmethod
    def add_stb(serial_number: str, notes: str = "") -> SetTopBox:
        serial = (serial_number or "").strip()
        if not serial:
            raise ValidationError("serial_number", "must not be blank")
        if SetTopBox.objects.filter(serial_number=serial).exists():
            raise ConflictError(f"Set-top box {serial} is already in inventory")
        stb = SetTopBox.objects.create(serial_number=serial, notes=notes or "")
        logger.info(f"📦 [Inventory] Added STB {serial}")
        return stb

    @staticmethod
    def available() -> list[SetTopBox]:
        return list(SetTopBox.objects.filter(status="available"))

    @staticmethod
    def assign(stb_id: Any, subscriber_id: Any) -> SetTopBox:
        """Hand an available box to a subscriber and record its serial on them"""
        with transaction.atomic():
            stb = _lock_stb(stb_id)
            if stb.status != "available":
                raise ConflictError(f"Set-top box {stb.serial_number} is {stb.status}, not available")
            subscriber = Subscriber.objects.select_for_update().filter(pk=subscriber_id).first()
            if subscriber is None:
                raise NotFoundError("Subscriber", subscriber_id)

            stb.status = "assigned"
            stb.subscriber = subscriber
            stb.save(update_fields=["status", "subscriber", "updated_at"])
            subscriber.stb_number = stb.serial_number
            subscriber.save(update_fields=["stb_number", "updated_at"])

        logger.info(f"📦 [Inventory] STB {stb.serial_number} assigned to {subscriber.code}")
        return stb

    @staticmethod
    def unassign(stb_id: Any) -> SetTopBox:
        with transaction.atomic():
            stb = _lock_stb(stb_id)
            if stb.status != "assigned":
                raise ConflictError(f"Set-top box {stb.serial_number} is not assigned")
            StbInventoryService._release(stb)
            stb.status = "available"
            stb.save(update_fields=["status", "subscriber", "updated_at"])
        return stb

    @staticmethod
    def mark_faulty(stb_id: Any, notes: str = "") -> SetTopBox:
        """Take a box out of service, pulling it from its subscriber if needed"""
        with transaction.atomic():
            stb = _lock_stb(stb_id)
            if stb.status == "decommissioned":
                raise ConflictError(f"Set-top box {stb.serial_number} is decommissioned")
            if stb.status == "assigned":
                StbInventoryService._release(stb)
            stb.status = "faulty"
            stb.notes = notes or "Marked as faulty"
            stb.save(update_fields=["status", "subscriber", "notes", "updated_at"])
        logger.warning(f"⚠️ [Inventory] STB {stb.serial_number} marked faulty: {stb.notes}")
        return stb

    @staticmethod
    def mark_repaired(stb_id: Any) -> SetTopBox:
        with transaction.atomic():
            stb = _lock_stb(stb_id)
            if stb.status != "faulty":
                raise ConflictError(f"Set-top box {stb.serial_number} is not faulty")
            stb.status = "available"
            stb.notes = "Repaired and available"
            stb.save(update_fields=["status", "notes", "updated_at"])
        return stb

    @staticmethod
    def decommission(stb_id: Any) -> SetTopBox:
        with transaction.atomic():
            stb = _lock_stb(stb_id)
            if stb.status == "assigned":
                raise ConflictError(f"Unassign set-top box {stb.serial_number} before decommissioning it")
            stb.status = "decommissioned"
            stb.save(update_fields=["status", "updated_at"])
        return stb

    @staticmethod
    def delete_stb(stb_id: Any) -> None:
        with transaction.atomic():
            stb = _lock_stb(stb_id)
            if stb.status == "assigned":
                raise ConflictError(f"Unassign set-top box {stb.serial_number} before deleting it")
            stb.delete()

    @staticmethod
    def _release(stb: SetTopBox) -> None:
        """Detach a box from its subscriber; clears the serial they carry"""
        if stb.subscriber_id is not None:
            Subscriber.objects.filter(pk=stb.subscriber_id, stb_number=stb.serial_number).update(stb_number="")
        stb.subscriber = None
