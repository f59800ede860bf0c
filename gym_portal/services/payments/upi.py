"""UPI deep-link hand-off.

Opening the link is best effort: when no UPI app can take it the user is
told to scan the QR code instead. Device class only changes the guidance.
"""

from __future__ import annotations

import asyncio
import re
from typing import Callable, Optional

from gym_portal.core.config import settings
from gym_portal.core.logging_config import get_logger
from gym_portal.services.navigation import Notifier
from gym_portal.utils.enums import NoticeLevel

logger = get_logger(__name__)

MOBILE_USER_AGENT = re.compile(
    r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE
)

LinkOpener = Callable[[str], None]

SCAN_HINT = "If UPI app didn't open, please scan the QR code instead"
OPEN_FAILED = "Failed to open UPI app. Please scan the QR code instead."
DESKTOP_HINT = "Please use a mobile device or scan the QR code with your UPI app"
NO_LINK = "Payment link not available"


def is_mobile(user_agent: Optional[str]) -> bool:
    return bool(user_agent) and MOBILE_USER_AGENT.search(user_agent) is not None


async def launch_upi_intent(
    upi_intent: Optional[str],
    user_agent: Optional[str],
    opener: LinkOpener,
    notifier: Notifier,
    hint_delay: Optional[float] = None,
) -> bool:
    """Try to hand ``upi_intent`` to the platform; returns whether the attempt went through.

    Never raises: every failure turns into guidance to scan the QR code.
    """
    if not upi_intent:
        notifier.notify(NoticeLevel.error, NO_LINK)
        return False

    if is_mobile(user_agent):
        try:
            opener(upi_intent)
        except Exception as e:
            logger.warning(f"Opening UPI link failed on mobile: {e}")
            notifier.notify(NoticeLevel.error, OPEN_FAILED)
            return False
        await asyncio.sleep(hint_delay if hint_delay is not None else settings.UPI_FALLBACK_HINT_SECONDS)
        notifier.notify(NoticeLevel.info, SCAN_HINT)
        return True

    notifier.notify(NoticeLevel.info, DESKTOP_HINT)
    # Desktop UPI apps exist; still attempt the hand-off
    try:
        opener(upi_intent)
    except Exception as e:
        logger.error(f"Error opening UPI link: {e}")
        return False
    return True
