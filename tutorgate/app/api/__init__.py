"""API endpoints package for tutorgate."""

from tutorgate.app.api.tutor import router as tutor_router

__all__ = [
    "tutor_router",
]
