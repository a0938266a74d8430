import logging

from sqlalchemy.orm import Session

from spotwise.core.config import get_settings
from spotwise.core.logging import configure_logging
import spotwise.models  # noqa: F401
from spotwise.db.base import Base
from spotwise.db.session import build_engine, build_session_factory
from spotwise.schemas.auth import RegisterRequest
from spotwise.services.accounts_service import AccountService

logger = logging.getLogger(__name__)

# around Connaught Place, New Delhi
DEMO_ACCOUNTS = [
    {
        "userName": "Demo Seeker",
        "email": "seeker@spotwise.dev",
        "password": "seeker123",
        "role": "seeker",
        "contactNumber": "9000000001",
        "location": {"type": "Point", "coordinates": [77.2167, 28.6315]},
    },
    {
        "userName": "Demo Plumber",
        "email": "plumber@spotwise.dev",
        "password": "provider123",
        "role": "provider",
        "contactNumber": "9000000002",
        "skills": ["plumbing"],
        "location": {"type": "Point", "coordinates": [77.2190, 28.6330]},
    },
    {
        "userName": "Demo Electrician",
        "email": "electrician@spotwise.dev",
        "password": "provider123",
        "role": "provider",
        "contactNumber": "9000000003",
        "skills": ["electrical", "plumbing"],
        "location": {"type": "Point", "coordinates": [77.2090, 28.6280]},
    },
]


def seed(db: Session, accounts: AccountService) -> int:
    created = 0
    for raw in DEMO_ACCOUNTS:
        if accounts.find_by_email(db, raw["email"]):
            continue
        accounts.register(db, RegisterRequest.model_validate(raw))
        created += 1
    return created


def main():
    settings = get_settings()
    configure_logging(settings)

    engine = build_engine(settings)
    Base.metadata.create_all(bind=engine)
    db = build_session_factory(engine)()
    try:
        created = seed(db, AccountService())
    finally:
        db.close()
    logger.info("seed complete", extra={"created": created})


if __name__ == "__main__":
    main()
