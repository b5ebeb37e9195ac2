import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from office_hours.core import config
from office_hours.database import Base, engine, ensure_appointment_schema
from office_hours.models import appointment, availability_slot, profile  # noqa: F401
from office_hours.routes import (
    appointment_routes,
    export_routes,
    notification_routes,
    profile_routes,
    slot_routes,
)

app = FastAPI(title='Office Hours Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize() -> None:
    config.validate_runtime_config()

    missing_mail_settings = config.missing_mail_settings()
    if missing_mail_settings:
        logger.error(
            'Mail relay is not configured (missing %s); booking emails will not be sent.',
            ', '.join(missing_mail_settings),
        )

    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Office Hours API Running'}


app.include_router(profile_routes.router, prefix='/profiles')
app.include_router(slot_routes.router, prefix='/slots')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(export_routes.router, prefix='/exports')
app.include_router(notification_routes.router, prefix='/notifications')
