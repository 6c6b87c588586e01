from decimal import Decimal
from sqlalchemy.orm import Session
from ..db.session import SessionLocal
from ..db import models


DEMO_COURTS = (
    {"name": "Court 1", "hourly_rate": Decimal("40.00")},
    {"name": "Court 2", "hourly_rate": Decimal("40.00")},
    {"name": "Center Court", "hourly_rate": Decimal("60.00")},
)


def seed(session: Session, facility_id: int = 1) -> list[models.Court]:
    existing = session.query(models.Court).filter_by(facility_id=facility_id).all()
    if existing:
        return existing
    courts = [models.Court(facility_id=facility_id, **data) for data in DEMO_COURTS]
    session.add_all(courts)
    session.commit()
    return courts


if __name__ == "__main__":
    with SessionLocal() as session:
        seed(session)
        print("Seed data created")
