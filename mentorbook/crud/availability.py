from typing import List, Optional

from sqlalchemy.orm import Session

from mentorbook import models


def get_template(db: Session, template_id: int) -> Optional[models.AvailabilitySlotTemplate]:
    return db.query(models.AvailabilitySlotTemplate).filter(
        models.AvailabilitySlotTemplate.id == template_id
    ).first()


def list_templates(
    db: Session, mentor_id: int, *, active_only: bool = False
) -> List[models.AvailabilitySlotTemplate]:
    query = db.query(models.AvailabilitySlotTemplate).filter(
        models.AvailabilitySlotTemplate.mentor_id == mentor_id
    )
    if active_only:
        query = query.filter(models.AvailabilitySlotTemplate.is_active.is_(True))
    return query.order_by(
        models.AvailabilitySlotTemplate.day_of_week.asc(),
        models.AvailabilitySlotTemplate.start_time.asc(),
    ).all()


def list_active_for_day(
    db: Session, mentor_id: int, day_of_week: int
) -> List[models.AvailabilitySlotTemplate]:
    return db.query(models.AvailabilitySlotTemplate).filter(
        models.AvailabilitySlotTemplate.mentor_id == mentor_id,
        models.AvailabilitySlotTemplate.day_of_week == day_of_week,
        models.AvailabilitySlotTemplate.is_active.is_(True),
    ).order_by(
        models.AvailabilitySlotTemplate.start_time.asc(),
        models.AvailabilitySlotTemplate.id.asc(),
    ).all()


def create_template(
    db: Session,
    *,
    mentor_id: int,
    day_of_week: int,
    start_time: str,
    end_time: str,
    timezone: str,
) -> models.AvailabilitySlotTemplate:
    template = models.AvailabilitySlotTemplate(
        mentor_id=mentor_id,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        timezone=timezone,
        is_active=True,
    )
    db.add(template)
    db.flush()
    return template


def deactivate_all(db: Session, mentor_id: int) -> int:
    return db.query(models.AvailabilitySlotTemplate).filter(
        models.AvailabilitySlotTemplate.mentor_id == mentor_id,
        models.AvailabilitySlotTemplate.is_active.is_(True),
    ).update({"is_active": False}, synchronize_session=False)
