"""
FastAPI dependency injection for services
"""

from fastapi import Request

from app.services.firebase_service import FirebaseService


def get_firebase_service(request: Request) -> FirebaseService:
    """
    Return the Firestore handle opened by the application lifespan.

    Tests replace this dependency through app.dependency_overrides.
    """
    return request.app.state.firebase
