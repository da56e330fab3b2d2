"""
Hotload Snapshot Package.

File state snapshots and content hashing for change detection.
Requires Python 3.11+.
"""

from snapshot.hash_calculator import HashCalculator
from snapshot.state_cache import FileState, StateCache, build_state_cache, read_file_state

__all__ = [
    "HashCalculator",
    "FileState",
    "StateCache",
    "build_state_cache",
    "read_file_state",
]
