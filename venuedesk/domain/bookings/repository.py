"""Booking repository - Database operations for bookings"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_bookings(db: Session, status: Optional[str] = None) -> list[Booking]:
        """Get all bookings, newest first, optionally filtered by status"""
        query = db.query(Booking)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.created_at.desc()).all()

    @staticmethod
    def get_booking_by_id(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def create_booking(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def update_status(db: Session, booking: Booking, status: str) -> Booking:
        """Single-field update, committed on its own"""
        booking.status = status
        db.commit()
        db.refresh(booking)
        return booking
