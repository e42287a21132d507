"""
HealthPod Ledger - Encrypted health records in a Solid Pod.

Imports and exports blood pressure, vaccination, diary, medication and
profile records between CSV/JSON files and encrypted documents stored
in a user-owned Solid Pod, reconciling duplicates before overwriting.
"""

__version__ = "0.1.0"
