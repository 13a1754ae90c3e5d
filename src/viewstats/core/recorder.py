"""
Event recorder: privacy-reduces a page view and appends it to storage.
"""
import logging

from ..referrer import referrer_host
from ..user_agent import summarize_user_agent
from .storage import Storage, StorageError

logger = logging.getLogger(__name__)


class EventRecorder:
    """Records page views on a shared storage handle.

    Recording is fire-and-forget: storage failures are logged and never
    reach the caller.
    """

    def __init__(self, storage: Storage):
        self.storage = storage

    def record(self, url: str | None, referrer: str | None = None, user_agent: str | None = None) -> bool:
        """Record one page view; the returned flag is informational, never an error channel.

        Only the referrer hostname and a "{browser} {version}" summary of
        the user agent are stored. The view time is assigned by the store.

        Returns True if a row was written. False means the URL was empty or
        the insert failed and was logged; callers need not act on it.
        """
        if not url:
            return False

        ref = referrer_host(referrer) if referrer else ""
        ua = summarize_user_agent(user_agent) if user_agent else ""

        try:
            self.storage.execute(
                "INSERT INTO views(url, ref, useragent) VALUES (?, ?, ?)",
                [url, ref, ua],
            )
        except StorageError as e:
            logger.error(f"Inserting view for {url!r} failed: {e}")
            return False
        return True
