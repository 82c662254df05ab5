"""Flat-text policy sources and the retry policies that re-read them."""
from rbacops.sources.loader import LoadStage, PolicyKernel, PolicyLoader, default_retry_policy
from rbacops.sources.parsers import SourceDiagnostic
from rbacops.sources.retry import InteractiveRetryPolicy, RetryPolicy

__all__ = [
    "InteractiveRetryPolicy",
    "LoadStage",
    "PolicyKernel",
    "PolicyLoader",
    "RetryPolicy",
    "SourceDiagnostic",
    "default_retry_policy",
]
