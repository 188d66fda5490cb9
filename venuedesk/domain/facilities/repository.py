"""Facility repository - Database operations for facilities"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Facility


class FacilityRepository:
    """Repository for facility database operations"""

    @staticmethod
    def get_facilities(db: Session, status: Optional[str] = None) -> list[Facility]:
        query = db.query(Facility)
        if status:
            query = query.filter(Facility.status == status)
        return query.order_by(Facility.created_at.desc()).all()

    @staticmethod
    def get_facility_by_id(db: Session, facility_id: str) -> Optional[Facility]:
        return db.query(Facility).filter(Facility.id == facility_id).first()

    @staticmethod
    def create_facility(db: Session, **facility_data) -> Facility:
        facility = Facility(**facility_data)
        db.add(facility)
        db.commit()
        db.refresh(facility)
        return facility

    @staticmethod
    def update_status(db: Session, facility: Facility, status: str) -> Facility:
        facility.status = status
        db.commit()
        db.refresh(facility)
        return facility
