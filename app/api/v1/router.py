from fastapi import APIRouter

from app.api.v1.admin import router as admin_router
from app.api.v1.auth import router as auth_router
from app.api.v1.bookings import router as bookings_router
from app.api.v1.finance import router as finance_router
from app.api.v1.help import router as help_router
from app.api.v1.languages import router as languages_router
from app.api.v1.payments import router as payments_router
from app.api.v1.reviews import router as reviews_router
from app.api.v1.stats import router as stats_router
from app.api.v1.teachers import router as teachers_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(bookings_router)
api_router.include_router(teachers_router)
api_router.include_router(reviews_router)
api_router.include_router(payments_router)
api_router.include_router(languages_router)
api_router.include_router(help_router)
api_router.include_router(stats_router)
api_router.include_router(admin_router)
api_router.include_router(finance_router)
