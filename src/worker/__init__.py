"""Background workers for the video credit service"""
from .generation_poller import GenerationPollerWorker
from .ledger_reconciler import LedgerReconcilerWorker

__all__ = ["GenerationPollerWorker", "LedgerReconcilerWorker"]
