"""
Audit trail for strongbox.

This package records every store mutation in a git history.
"""

from strongbox.audit.trail import AuditRecord, GitAuditTrail

__all__ = ["AuditRecord", "GitAuditTrail"]
