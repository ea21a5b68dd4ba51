"""Small helpers shared by the API tests"""
from feedback_app.core.security import create_user_token


def auth_headers_for(user) -> dict:
    """Bearer header for a user"""
    return {'Authorization': f'Bearer {create_user_token(user)}'}


def ratings_for(subject, rating: int = 4) -> list:
    """One rated answer per subject question"""
    return [{'question': q, 'answer': rating} for q in subject.questions]
