"""
Structured operation logging for dream storage, vectorization and drift correction.
"""

import logging
from typing import Any, Dict


def _truncate(value: str, limit: int = 50) -> str:
    return value[:limit] + "..." if len(value) > limit else value


class StructuredLogger:
    """Structured logger for dream, vector, similarity and drift operations."""

    def __init__(self, name: str = "dreamweaver"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status == "failed":
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_dream_operation(self, operation: str, dream_id: str, owner_id: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a relational dream store operation."""
        log_details = {"dream_id": dream_id, "owner_id": owner_id}
        if details:
            log_details.update(details)

        self.log_operation(f"dream.{operation}", status, log_details)

    def log_vector_operation(self, operation: str, record_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector operation."""
        log_details = {"record_id": record_id}
        if details:
            log_details.update(details)

        self.log_operation(f"vector.{operation}", status, log_details)

    def log_similarity_query(self, owner_id: str, query: str, result_count: int, details: Dict[str, Any] = None, status: str = "success"):
        """Log a similarity search."""
        log_details = {
            "owner_id": owner_id,
            "query": _truncate(query),
            "result_count": result_count
        }
        if details:
            log_details.update(details)

        self.log_operation("vector.similarity", status, log_details)

    def log_drift_finding(self, finding_type: str, severity: str, namespace: str, dream_id: str, details: Dict[str, Any] = None):
        """Log drift detection findings."""
        log_details = {
            "finding_type": finding_type,
            "severity": severity,
            "namespace": namespace,
            "dream_id": dream_id
        }
        if details:
            log_details.update(details)

        self.log_operation("drift.finding", "detected", log_details)

    def log_correction_proposal(self, plan_id: str, actions_count: int, details: Dict[str, Any] = None):
        """Log correction plan proposal."""
        log_details = {
            "plan_id": plan_id,
            "actions_count": actions_count,
            "mode": "propose"
        }
        if details:
            log_details.update(details)

        self.log_operation("correction.proposed", "success", log_details)

    def log_correction_application(self, plan_id: str, actions_count: int, status: str = "success", details: Dict[str, Any] = None):
        """Log correction plan execution."""
        log_details = {
            "plan_id": plan_id,
            "actions_count": actions_count,
            "mode": "apply"
        }
        if details:
            log_details.update(details)

        self.log_operation("correction.applied", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
