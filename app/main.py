from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.auth.router import router as auth_router
from app.api.v1.classes.router import router as classes_router
from app.api.v1.users.router import router as users_router
from app.auth.store import BcryptCredentialVerifier, SqlAlchemyIdentityStore
from app.core.config import settings
from app.core.logging_config import setup_logging
from app.core.services import SchoolService
from app.db.seed_admin import seed_admin
from app.db.session import AsyncSessionLocal, create_tables


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    school: SchoolService = app.state.school_service
    await seed_admin(school.identity_store, school.verifier)
    yield


def create_app(school_service: Optional[SchoolService] = None) -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title="School Enrollment Service", lifespan=lifespan)

    # The registry lives in memory, so one service instance per process
    if school_service is None:
        school_service = SchoolService(
            SqlAlchemyIdentityStore(AsyncSessionLocal),
            BcryptCredentialVerifier(),
        )
    app.state.school_service = school_service

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(classes_router)

    return app


app = create_app()
