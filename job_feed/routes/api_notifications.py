from fastapi import APIRouter, Depends

from job_feed.routes.api_listings import get_notifier
from job_feed.schemas.listing import NotificationResponse
from job_feed.services.notifier import TelegramNotifier

router = APIRouter()


@router.get("/status")
async def notification_status(notifier: TelegramNotifier = Depends(get_notifier)):
    return {"configured": notifier.configured}


@router.post("/test", response_model=NotificationResponse)
async def send_test_notification(notifier: TelegramNotifier = Depends(get_notifier)):
    """Send a test message through the configured bot."""
    sent = await notifier.send_test_message()
    return NotificationResponse(success=sent, configured=notifier.configured)
