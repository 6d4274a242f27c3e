"""
Excel Order Ledger with Concurrency Control

Appends placed orders to an Excel ledger, one row per order item.
Several Celery workers may export at once, so every read-modify-write
of the workbook happens under a file lock.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class ExcelManager:
    """Process-safe Excel ledger of placed orders."""

    DATA_DIR = Path(settings.data_directory)
    ORDERS_FILE = DATA_DIR / settings.excel_filename
    LOCK_TIMEOUT = settings.excel_lock_timeout

    ORDER_COLUMNS = [
        "order_id",
        "user_id",
        "date_time",
        "order_status",
        "order_total",
        "product_id",
        "quantity",
        "unit_price",
        "line_total",
        "exported_at",
    ]

    @classmethod
    def _lock_path(cls) -> Path:
        return cls.ORDERS_FILE.with_name(cls.ORDERS_FILE.name + ".lock")

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        if not cls.DATA_DIR.exists():
            cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {cls.DATA_DIR}")

    @classmethod
    def _load_or_create_df(cls) -> pd.DataFrame:
        """Load existing ledger or create an empty one."""
        if cls.ORDERS_FILE.exists():
            return pd.read_excel(cls.ORDERS_FILE, engine="openpyxl")
        return pd.DataFrame(columns=cls.ORDER_COLUMNS)

    @classmethod
    def build_rows(cls, order_data: dict[str, Any], export_time: str) -> list[dict[str, Any]]:
        """Flatten an order snapshot into one ledger row per item."""
        return [
            {
                "order_id": order_data["order_id"],
                "user_id": order_data["user_id"],
                "date_time": order_data.get("created_at", export_time),
                "order_status": order_data.get("status"),
                "order_total": round(float(order_data["total_amount"]), 2),
                "product_id": item["product_id"],
                "quantity": item["quantity"],
                "unit_price": round(float(item["unit_price"]), 2),
                "line_total": round(float(item["unit_price"]) * item["quantity"], 2),
                "exported_at": export_time,
            }
            for item in order_data.get("items", [])
        ]

    @classmethod
    def export_order(cls, order_data: dict[str, Any]) -> dict[str, Any]:
        """
        Append an order to the ledger under the file lock.

        Idempotent: rows whose (order_id, product_id) are already in the
        ledger are skipped, so a redelivered task never duplicates lines.
        """
        cls._ensure_data_dir()

        order_id = order_data.get("order_id", 0)
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            lock = FileLock(str(cls._lock_path()), timeout=cls.LOCK_TIMEOUT)

            with lock:
                logger.debug(f"Lock acquired for Order #{order_id}")

                df = cls._load_or_create_df()

                export_time = datetime.now().isoformat()
                rows = cls.build_rows(order_data, export_time)

                exported = set(zip(df["order_id"].tolist(), df["product_id"].tolist()))
                rows = [r for r in rows if (r["order_id"], r["product_id"]) not in exported]

                if rows:
                    df = pd.concat([df, pd.DataFrame(rows, columns=cls.ORDER_COLUMNS)], ignore_index=True)
                    df.to_excel(str(cls.ORDERS_FILE), index=False, engine="openpyxl")
                    logger.info(f"Order #{order_id} exported to Excel ({len(rows)} row(s))")
                    result["message"] = f"Order #{order_id} exported"
                else:
                    logger.info(f"Order #{order_id} already in the ledger, skipping")
                    result["message"] = f"Order #{order_id} already exported"

                result["success"] = True
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            logger.error(f"Lock timeout for Order #{order_id}")

        return result

    @classmethod
    def get_all_orders(cls) -> list[dict[str, Any]]:
        """Get all ledger rows."""
        if not cls.ORDERS_FILE.exists():
            return []
        df = pd.read_excel(cls.ORDERS_FILE, engine="openpyxl")
        return df.to_dict("records")

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the ledger and its lock file."""
        for f in (cls.ORDERS_FILE, cls._lock_path()):
            if f.exists():
                f.unlink()
        logger.info("Excel ledger cleared")
        return True
