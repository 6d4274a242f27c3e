"""
Celery Tasks
Background tasks for processing placed orders asynchronously.
"""

import logging
import time

from app.celery_worker import celery_app
from app.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


def order_export_payload(order) -> dict:
    """
    Build the JSON-safe snapshot of a placed order sent to the worker.

    Amounts travel as strings so no precision is lost on the way.
    """
    return {
        "order_id": order.id,
        "user_id": order.user_id,
        "status": order.status.value,
        "total_amount": str(order.total_amount),
        "created_at": order.created_at.isoformat(),
        "items": [
            {
                "product_id": item.product_id,
                "quantity": item.quantity,
                "unit_price": str(item.unit_price),
            }
            for item in order.items
        ],
    }


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_order_to_excel(self, order_data: dict) -> dict:
    """
    Export a placed order to the Excel ledger.
    This task runs asynchronously via Celery worker.

    Args:
        order_data: Snapshot built by order_export_payload()

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_id = order_data.get('order_id', 'unknown')

    logger.info(f"Task {task_id}: Processing order #{order_id}")
    start_time = time.time()

    try:
        result = ExcelManager.export_order(order_data)

        elapsed = round(time.time() - start_time, 3)
        result['task_id'] = task_id
        result['processing_time_seconds'] = elapsed

        if result['success']:
            logger.info(f"Task {task_id}: Order #{order_id} completed in {elapsed}s")
        else:
            logger.warning(f"Task {task_id}: Order #{order_id} failed - {result['message']}")

        return result

    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        logger.error(f"Task {task_id}: Order #{order_id} error after {elapsed}s - {str(e)}")

        # Celery will auto-retry based on configuration
        raise

