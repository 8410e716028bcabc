"""
Clinic Kernel - lifecycle and inventory core

The shared core behind the clinic-network administration screens:
- Status workflows (ordered and free-form) with an append-only audit trail
- Duration and overdue metrics derived from timestamps
- Inventory ledger arithmetic, valuation and withdrawal reservations
- Facility / clinic dashboard aggregation
"""

__version__ = "0.1.0"
