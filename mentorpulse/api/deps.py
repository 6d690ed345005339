from fastapi import Request

from mentorpulse.services.chat_service import ChatDeliveryEngine


def get_chat_engine(request: Request) -> ChatDeliveryEngine:
    """Engine built in the application lifespan."""
    return request.app.state.chat_engine
