from .backup_analyzer import (
    BackupComplianceAnalyzer,
    Classification,
    ComplianceSignal,
    SignalKind,
)

__all__ = [
    "BackupComplianceAnalyzer",
    "Classification",
    "ComplianceSignal",
    "SignalKind",
]
