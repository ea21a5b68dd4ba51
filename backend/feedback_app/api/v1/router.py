from fastapi import APIRouter
from feedback_app.api.v1.endpoints import auth, subjects, feedback, feedback_periods, admin, hod, dean, settings, email, health

api_router = APIRouter()

# Use /health/ready for load balancer checks
api_router.include_router(health.router)

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(subjects.router, prefix="/subjects", tags=["Subjects"])
api_router.include_router(feedback.router, prefix="/feedback", tags=["Feedback"])
api_router.include_router(feedback_periods.router, prefix="/feedback-periods", tags=["Feedback Periods"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
api_router.include_router(hod.router, prefix="/hod", tags=["HOD"])
api_router.include_router(dean.router, prefix="/dean", tags=["Dean"])
api_router.include_router(settings.router, prefix="/settings", tags=["Settings"])
api_router.include_router(email.router, prefix="/email", tags=["Email"])
