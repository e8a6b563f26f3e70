"""
Web App Backup Compliance Auditor
=================================
A read-only audit of Azure App Service backup configuration across subscriptions.
Reports backup enablement, retention, and the outcome and age of recent backups.

WARNING: This tool operates in STRICT READ-ONLY mode.
         It never triggers, restores, or reconfigures backups.
"""

__version__ = "1.0.0"
__mode__ = "READ-ONLY"
