"""
OrgLedger - Organization Finance Tracker

Members, fees, fee assignments and transactions for a small
organization, kept in Firestore behind Firebase Authentication.

DESIGN PRINCIPLES:
1. Untrusted input is validated and normalized before it reaches storage
2. Every mutation path runs through the same schemas as creation
3. A fee fans out into assignments; a payment fans out into a transaction
4. Every write is auditable
5. Storage, identity and blob services are swappable
"""

__version__ = "1.0.0"
__author__ = "OrgLedger Team"
