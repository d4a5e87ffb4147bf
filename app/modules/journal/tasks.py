"""
Background tasks for the journal module
"""
from app.core.celery import celery_app
from app.database.database import SessionLocal
from app.modules.journal.posting import PostingRules
import logging

logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def retry_pending_postings(self):
    """
    Periodic task: replay postings that failed while a sale, purchase or
    return was being completed.
    """
    db = SessionLocal()
    try:
        result = PostingRules(db).retry_pending_postings()
        if result["processed"]:
            logger.info(f"Posting outbox processed: {result}")
        return result

    except Exception as e:
        logger.error(f"Posting outbox retry failed: {str(e)}")
        raise self.retry(exc=e, countdown=60, max_retries=3)
    finally:
        db.close()
