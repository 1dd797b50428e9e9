"""auth/ -- Identity and access-control core for BudgetTracker.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or forum/.
api/ and forum/ import from auth/, not the other way around.
"""
