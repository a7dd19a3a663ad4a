"""
Audit trail: every change to the household records, and every refused
change, as a structured log line plus an optional persisted row.
"""

from src.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
