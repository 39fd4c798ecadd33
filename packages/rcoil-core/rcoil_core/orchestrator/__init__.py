"""
rcoil orchestrator - request group trees and their concurrent execution.
"""
from .tree import Coil, RequestGroup
from .context import ExecutionContext, ReadWriteLock
from .records import RequestRecord, ResponseRecord
from .runners import GroupRunner, GroupState, RequestRunner, RequestState
from .director import CoilEvent, ExecutionDirector, run_coil
from .plan import load_coil, load_coil_from_yaml

__all__ = [
    "Coil",
    "RequestGroup",
    "ExecutionContext",
    "ReadWriteLock",
    "RequestRecord",
    "ResponseRecord",
    "GroupRunner",
    "GroupState",
    "RequestRunner",
    "RequestState",
    "CoilEvent",
    "ExecutionDirector",
    "run_coil",
    "load_coil",
    "load_coil_from_yaml",
]
