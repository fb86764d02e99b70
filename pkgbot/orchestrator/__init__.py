"""
Orchestrator modules package
"""

from .state import BuildState
from .state_classifier import PackageStatus, classify, is_vcs_package
from .update_runner import UpdateOptions, UpdateRunner
from .reconciler import InstalledPackageState, ReconcileAction, ReconcileDecision, Reconciler

__all__ = [
    'BuildState',
    'PackageStatus',
    'classify',
    'is_vcs_package',
    'UpdateOptions',
    'UpdateRunner',
    'InstalledPackageState',
    'ReconcileAction',
    'ReconcileDecision',
    'Reconciler',
]
