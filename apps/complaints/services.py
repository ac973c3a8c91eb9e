"""
Complaint tracking service.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from django.db.models import Count

from apps.common.clock import Clock, get_default_clock
from apps.common.types import NotFoundError, ValidationError
from apps.common.validators import validate_choice
from apps.complaints.models import Complaint
from apps.subscribers.models import Subscriber

logger = logging.getLogger(__name__)


class ComplaintService:
    """
    Open, progress and resolve complaints.

    ``resolved_at`` is stamped the first time a complaint is resolved and kept
    if it is later reopened and resolved again.
    """

    VALID_TRANSITIONS: ClassVar[dict[str, list[str]]] = {
        "pending": ["in-progress", "resolved"],
        "in-progress": ["pending", "resolved"],
        "resolved": ["in-progress"],
    }

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or get_default_clock()

    def open_complaint(
        self, subscriber_id: Any, description: str, category: str = "technical", priority: str = "medium"
    ) -> Complaint:
        if not (description or "").strip():
            raise ValidationError("description", "must not be blank")
        subscriber = Subscriber.objects.filter(pk=subscriber_id).first()
        if subscriber is None:
            raise NotFoundError("Subscriber", subscriber_id)

        complaint = Complaint.objects.create(
            subscriber=subscriber,
            description=description.strip(),
            category=validate_choice(category, Complaint.CATEGORY_CHOICES, "category"),
            priority=validate_choice(priority, Complaint.PRIORITY_CHOICES, "priority"),
            status="pending",
            created_at=self.clock.now(),
        )
        logger.info(f"📝 [Complaints] {subscriber.code} opened a {complaint.priority} {complaint.category} complaint")
        return complaint

    def update_status(self, complaint_id: Any, status: str, resolution_notes: str = "") -> Complaint:
        complaint = Complaint.objects.filter(pk=complaint_id).first()
        if complaint is None:
            raise NotFoundError("Complaint", complaint_id)
        new_status = validate_choice(status, Complaint.STATUS_CHOICES, "status")

        if new_status != complaint.status:
            if new_status not in self.VALID_TRANSITIONS[complaint.status]:
                raise ValidationError("status", f"cannot move from {complaint.status} to {new_status}")
            complaint.status = new_status
        if new_status == "resolved" and complaint.resolved_at is None:
            complaint.resolved_at = self.clock.now()
        if resolution_notes:
            complaint.resolution_notes = resolution_notes
        complaint.save(update_fields=["status", "resolved_at", "resolution_notes"])
        return complaint

    @staticmethod
    def delete_complaint(complaint_id: Any) -> None:
        deleted, _details = Complaint.objects.filter(pk=complaint_id).delete()
        if not deleted:
            raise NotFoundError("Complaint", complaint_id)

    @staticmethod
    def status_counts() -> dict[str, int]:
        counts = {key: 0 for key, _label in Complaint.STATUS_CHOICES}
        for row in Complaint.objects.order_by().values("status").annotate(total=Count("id")):
            counts[row["status"]] = row["total"]
        return counts
